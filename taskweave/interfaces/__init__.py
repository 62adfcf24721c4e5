"""
Interfaces - User-facing applications.

- api: FastAPI REST API with server-sent event streams
- cli: Command-line interface
"""

__all__ = ["api", "cli"]
