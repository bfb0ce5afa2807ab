"""
Pytest configuration and fixtures for FileKeep tests.
"""

import itertools
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

import pytest

from filekeep.TrashGate import TrashService, TrashSettings

# Check for pytest-asyncio
try:
    import pytest_asyncio  # noqa: F401
    HAS_PYTEST_ASYNCIO = True
except ImportError:
    HAS_PYTEST_ASYNCIO = False

# 2023-11-14T22:13:20Z
BASE_NS = 1_700_000_000_000_000_000
BASE_TIME = datetime.fromtimestamp(BASE_NS / 1e9, tz=timezone.utc)


def pytest_collection_modifyitems(config, items):
    """Skip async tests if pytest-asyncio is not installed."""
    if HAS_PYTEST_ASYNCIO:
        return

    import asyncio
    skip_asyncio = pytest.mark.skip(
        reason="pytest-asyncio not installed - async tests require pytest-asyncio"
    )
    for item in items:
        if asyncio.iscoroutinefunction(item.function):
            item.add_marker(skip_asyncio)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sandbox(temp_dir) -> Path:
    """A sandbox root with a few files and folders."""
    root = temp_dir / "root"
    (root / "docs").mkdir(parents=True)
    (root / "docs" / "report.txt").write_text("quarterly numbers")
    (root / "notes.txt").write_text("remember the milk")
    (root / "photos" / "2023").mkdir(parents=True)
    (root / "photos" / "2023" / "beach.jpg").write_bytes(b"\xff\xd8\xff" + b"0" * 64)
    return root


@pytest.fixture
def clock_ns():
    """Deterministic nanosecond clock advancing one microsecond per call."""
    counter = itertools.count(BASE_NS, 1_000)
    return lambda: next(counter)


@pytest.fixture
def settings(sandbox) -> TrashSettings:
    return TrashSettings(
        root=str(sandbox),
        retention_days=30,
        sweep_interval_seconds=3600,
        janitor_enabled=False,
    )


@pytest.fixture
def service(settings, clock_ns) -> TrashService:
    """An initialized TrashService over the sandbox."""
    svc = TrashService(settings, clock_ns=clock_ns, clock=lambda: BASE_TIME)
    svc.initialize()
    return svc


@pytest.fixture
def clean_env(monkeypatch):
    """Remove FileKeep settings from the environment."""
    from filekeep.Config import CONFIG_SCHEMA

    for field in CONFIG_SCHEMA:
        # setenv first so values loaded from .env files are undone at teardown
        monkeypatch.setenv(field.env_var, "")
        monkeypatch.delenv(field.env_var)
    return monkeypatch


@pytest.fixture
def age_path():
    """Set a path's mtime to ``days`` before BASE_TIME."""
    def _age(path: Path, days: float) -> None:
        stamp = BASE_TIME.timestamp() - days * 86400
        os.utime(path, (stamp, stamp))
    return _age


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME
