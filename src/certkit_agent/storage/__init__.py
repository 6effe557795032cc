"""
Storage helpers for on-disk agent state.
"""

from .atomic import atomic_writer, exclusive_lock, write_file_atomic

__all__ = [
    "atomic_writer",
    "exclusive_lock",
    "write_file_atomic",
]
