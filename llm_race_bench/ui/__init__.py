"""
UI package for LLM Race Bench.

This package contains the Rich terminal dashboard that follows a race live
and summarizes its results.
"""

from .dashboard import Dashboard

__all__ = [
    "Dashboard",
]
