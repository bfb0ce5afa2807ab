"""FileKeep HTTP server."""
