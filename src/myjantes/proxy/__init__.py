"""Pass-through proxy from a local origin to the MyJantes API."""

from .app import create_app

__all__ = ["create_app"]
