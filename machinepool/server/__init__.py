"""
machinepool HTTP API server.

Usage:
    # Start server
    uvicorn machinepool.server:app --port 3000

    # Or programmatically
    from machinepool.server import app, create_app
"""

from machinepool.server.app import app, create_app

__all__ = ["app", "create_app"]
