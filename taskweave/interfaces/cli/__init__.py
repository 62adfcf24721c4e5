"""
CLI Interface - Command-line tools for TaskWeave.

Provides commands for:
- Model catalog inspection and direct routing
- App generation
- Content creation and analysis
- Serving the API
"""

from .main import app, main

__all__ = ["app", "main"]
