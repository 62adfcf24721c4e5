"""
Domains - Business logic layer.

Each domain is self-contained with:
- contracts.py: Interfaces (Protocol classes), where the domain has seams
- models.py: Pydantic data models
- Implementation files
- test_*.py beside the code
"""

__all__ = [
    "routing",
    "pipeline",
    "flows",
    "usage",
]
