"""
Trajectory input
================

This module provides streaming readers for LAMMPS dump files written in
the text or binary formats.
"""

from . import base, errors, properties, reader, recorder
from .base import Boundary, BoxBounds, Callback
from .errors import (
    AtomCountMismatchError,
    DumpReadError,
    FieldCountMismatchError,
    FileOpenError,
    MalformedAtomLineError,
    MalformedHeaderError,
    MissingColumnError,
    PrematureEOFError,
    ReaderStateError,
    UnknownFieldError,
    UnsupportedGeometryError,
)
from .properties import AtomData
from .reader import LAMMPSDumpReader
from .recorder import FrameRecorder

__all__ = [
    "base",
    "errors",
    "properties",
    "reader",
    "recorder",
    "AtomCountMismatchError",
    "AtomData",
    "Boundary",
    "BoxBounds",
    "Callback",
    "DumpReadError",
    "FieldCountMismatchError",
    "FileOpenError",
    "FrameRecorder",
    "LAMMPSDumpReader",
    "MalformedAtomLineError",
    "MalformedHeaderError",
    "MissingColumnError",
    "PrematureEOFError",
    "ReaderStateError",
    "UnknownFieldError",
    "UnsupportedGeometryError",
]
