"""
Health check API endpoints.

Aggregates health status from the registered FileKeep gates.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Tuple

from fastapi import APIRouter, HTTPException, Response

HealthSource = Callable[[], Dict[str, Any]]


def _collect_health_data(sources: Dict[str, HealthSource]) -> Tuple[bool, Dict[str, Any]]:
    """
    Collect health data from every gate.

    Returns:
        Tuple of (all_healthy, gates_dict)
    """
    gates = {}
    all_healthy = True

    for gate_name, get_status in sources.items():
        try:
            gates[gate_name] = get_status()
        except Exception as e:
            gates[gate_name] = {"healthy": False, "error": str(e)}
        if not gates[gate_name].get("healthy", False):
            all_healthy = False

    return all_healthy, gates


def create_router(sources: Dict[str, HealthSource]) -> APIRouter:
    router = APIRouter()

    @router.get("/api/health")
    async def api_health(response: Response) -> Dict[str, Any]:
        """
        Aggregated health status.

        Returns 200 when healthy, 503 when unhealthy.
        """
        all_healthy, gates = _collect_health_data(sources)
        if not all_healthy:
            response.status_code = 503
        return {"healthy": all_healthy, "gates": gates}

    @router.get("/api/health/gate/{gate_name}")
    async def api_health_gate(gate_name: str) -> Dict[str, Any]:
        """Health status for a single gate (case-insensitive name)."""
        for name, get_status in sources.items():
            if name.lower() == gate_name.lower():
                return get_status()
        raise HTTPException(
            status_code=404,
            detail=f"Unknown gate: {gate_name}. Available: {', '.join(sources)}",
        )

    return router


__all__ = ["create_router"]
