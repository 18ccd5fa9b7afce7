"""I/O helper subpackage."""
from . import tables

__all__ = ["tables"]
