"""
Terminal UI package built on textual.
"""

from .app import SnatcherApp

__all__ = ['SnatcherApp']
