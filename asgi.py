"""
asgi.py -- ASGI entry point for authflow.

The identity layer's own endpoints are mounted by the deployment under the
active profile's base_path (/api/auth); api/main.py's enforcement middleware
sits in front of them.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
