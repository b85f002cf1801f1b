"""ASGI application factory and dependencies for the Dispensa server."""

from dispensa.server.app import app, create_app

__all__ = ["app", "create_app"]
