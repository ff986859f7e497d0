"""
MDDump
======

Streaming readers for LAMMPS dump files in the text and binary formats.
"""

from . import algorithm, io

__version__ = VERSION = "1.0.0"

__all__ = ["algorithm", "io"]
