"""HTTP API for TeamSync (aiohttp)."""
