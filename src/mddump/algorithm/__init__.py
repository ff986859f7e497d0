"""
Algorithms
==========

This module is a collection of algorithms used in other MDDump
(sub)modules.
"""

from . import topology

__all__ = ["topology"]
