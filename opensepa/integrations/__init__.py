"""
Optional integrations with third-party frameworks.
"""

from .pydantic import from_dataclass

__all__ = ["from_dataclass"]
