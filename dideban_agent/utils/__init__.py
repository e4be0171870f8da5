"""
Utility functions and helpers.
"""

from .cancel import CancelToken, OperationCancelled

__all__ = [
    "CancelToken",
    "OperationCancelled",
]
