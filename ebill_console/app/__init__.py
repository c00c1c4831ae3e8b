"""
eBill console application.
"""

from .console import Console

__all__ = ["Console"]
