from __future__ import annotations
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import pandas as pd

from .base import Callback
from .properties import AtomData, resolve_fields

if TYPE_CHECKING:
    from .base import BaseReader


class FrameRecorder(Callback):
    """
    Callback that collects the atoms in each frame into a
    `pandas.DataFrame`.

    Each completed frame is appended to :attr:`frames` as a dictionary
    with the following keys:

    * :code:`"timestep"`: timestep of the frame,
    * :code:`"n_atoms"`: number of atoms declared in the frame header,
    * :code:`"box"`: simulation box
      (:class:`mddump.io.base.BoxBounds`), and
    * :code:`"atoms"`: `pandas.DataFrame` with one column per recorded
      attribute and one row per atom, in the order they appear in the
      file.

    Frames that fail to be read are not recorded.

    Parameters
    ----------
    fields : `str` or iterable of `str`
        Whitespace-separated string or sequence of LAMMPS dump
        attributes to record.
    """

    def __init__(self, fields: str | Iterable[str]) -> None:
        self._properties = resolve_fields(fields)
        self._rows = []
        self.frames: list[dict[str, Any]] = []

    def start_of_timestep(self, reader: BaseReader) -> None:
        self._rows = []

    def atom_line(self, atom: AtomData, reader: BaseReader) -> None:
        self._rows.append(tuple(getattr(atom, prop.name) for prop in self._properties))

    def end_of_timestep(self, reader: BaseReader) -> None:
        atoms = pd.DataFrame.from_records(
            self._rows, columns=[prop.name for prop in self._properties]
        ).astype({prop.name: prop.kind for prop in self._properties})
        self.frames.append(
            {
                "timestep": reader.timestep,
                "n_atoms": reader.n_atoms,
                "box": reader.box,
                "atoms": atoms,
            }
        )
        self._rows = []
