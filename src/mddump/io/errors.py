"""
Dump reader errors
==================

Exception hierarchy for problems encountered while opening or decoding
LAMMPS dump files. Every error raised by :mod:`mddump.io` derives from
:class:`DumpReadError`.
"""

from __future__ import annotations
from collections.abc import Iterable


class DumpReadError(Exception):
    """Base class for dump file reading errors."""


class FileOpenError(DumpReadError, OSError):
    """The dump file could not be opened."""


class ReaderStateError(DumpReadError):
    """The reader is not in a state that allows the requested operation."""


class MalformedHeaderError(DumpReadError):
    """A frame header (box or atoms tag, or a section name) is malformed."""


class UnknownFieldError(DumpReadError, KeyError):
    """
    A requested property identifier is not one of the supported
    per-atom properties.
    """

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown per-atom property '{self.name}'."


class MissingColumnError(DumpReadError):
    """
    A requested property is valid but absent from the columns declared
    in the current frame.
    """

    def __init__(self, name: str, available: Iterable[str], timestep: int) -> None:
        self.name = name
        self.available = tuple(available)
        self.timestep = timestep
        super().__init__(
            f"'{name}' was requested from the dump file, but it does not "
            f"exist in the frame at timestep {timestep}. Available "
            f"columns: {' '.join(self.available)}."
        )


class MalformedAtomLineError(DumpReadError):
    """An atom data line does not match the declared columns."""


class FieldCountMismatchError(DumpReadError):
    """
    The number of fields per atom in a binary dump file differs from
    the length of the field specification.
    """


class UnsupportedGeometryError(DumpReadError):
    """The frame uses a triclinic simulation box."""


class AtomCountMismatchError(DumpReadError):
    """
    The number of atoms streamed from a binary frame differs from the
    number declared in its header.
    """

    def __init__(self, streamed: int, declared: int) -> None:
        self.streamed = streamed
        self.declared = declared
        super().__init__(
            f"Total number of atoms in the frame ({streamed:,}) does not "
            f"match the number in the header ({declared:,})."
        )


class PrematureEOFError(DumpReadError, EOFError):
    """The stream ended in the middle of a frame."""
