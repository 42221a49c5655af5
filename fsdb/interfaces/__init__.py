"""
Abstract base classes and protocols for the filesystem database.
"""

from fsdb.interfaces.serializable import Serializable

__all__ = ["Serializable"]
