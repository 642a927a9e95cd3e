"""
HTTP API for the traffic topology service.

Usage:
    uvicorn ohm.api.server:app
"""
