"""Command implementations package."""

from . import migrate

__all__ = [
    'migrate',
]
