from __future__ import annotations
from abc import abstractmethod
from dataclasses import dataclass
from enum import Enum
from types import TracebackType
from typing import TYPE_CHECKING, Any, Self
import weakref

import numpy as np

from .errors import MalformedHeaderError

if TYPE_CHECKING:
    from .properties import AtomData


class Boundary(str, Enum):
    """
    Simulation box boundary styles, using the letters LAMMPS writes in
    dump files.
    """

    PERIODIC = "p"
    FIXED = "f"
    SHRINK_WRAPPED = "s"
    MINIMUM_IMAGE = "m"

    @classmethod
    def from_code(cls, code: int) -> Boundary:
        """
        Boundary style from the integer code used in binary dump files.
        """

        try:
            return _BOUNDARY_CODES[code]
        except KeyError:
            raise MalformedHeaderError(
                f"Invalid boundary code {code} in binary dump file. "
                "Valid values: 0, 1, 2, 3."
            ) from None

    @classmethod
    def from_letters(cls, letters: str) -> tuple[Boundary, Boundary]:
        """
        Lower and upper boundary styles from a two-letter token, like
        :code:`"pp"` or :code:`"fm"`.
        """

        if len(letters) != 2:
            raise MalformedHeaderError(
                f"Invalid boundary specification '{letters}'. Expected "
                "two letters."
            )
        try:
            return cls(letters[0]), cls(letters[1])
        except ValueError:
            raise MalformedHeaderError(
                f"Invalid boundary specification '{letters}'. Valid "
                "letters: 'p', 'f', 's', 'm'."
            ) from None


_BOUNDARY_CODES = dict(enumerate(Boundary))


@dataclass(frozen=True)
class BoxBounds:
    """
    Orthogonal simulation box of a single frame.

    Parameters
    ----------
    lo : `numpy.ndarray`
        Lower box bounds along the :math:`x`-, :math:`y`-, and
        :math:`z`-axes.

        **Shape**: :math:`(3,)`.

    hi : `numpy.ndarray`
        Upper box bounds.

        **Shape**: :math:`(3,)`.

    boundaries : `tuple`
        :code:`(lower, upper)` boundary styles for each axis.
    """

    lo: np.ndarray[float]
    hi: np.ndarray[float]
    boundaries: tuple[tuple[Boundary, Boundary], ...]

    def __post_init__(self) -> None:
        for name in ("lo", "hi"):
            array = np.array(getattr(self, name), dtype=float)
            if array.shape != (3,):
                raise ValueError(f"`{name}` must have shape (3,), not {array.shape}.")
            array.flags.writeable = False
            object.__setattr__(self, name, array)
        boundaries = tuple(tuple(Boundary(b) for b in pair) for pair in self.boundaries)
        if len(boundaries) != 3 or any(len(pair) != 2 for pair in boundaries):
            raise ValueError("`boundaries` must contain a (lower, upper) pair per axis.")
        object.__setattr__(self, "boundaries", boundaries)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(lo={self.lo.tolist()}, "
            f"hi={self.hi.tolist()}, boundaries='"
            + " ".join("".join(b.value for b in pair) for pair in self.boundaries)
            + "')"
        )

    @property
    def lengths(self) -> np.ndarray[float]:
        """
        Box lengths along the :math:`x`-, :math:`y`-, and
        :math:`z`-axes.
        """

        return self.hi - self.lo

    def is_periodic(self, axis: int, side: int) -> bool:
        """
        Specifies whether the lower (:code:`side=0`) or upper
        (:code:`side=1`) side of the box along an axis is periodic.
        """

        return self.boundaries[axis][side] is Boundary.PERIODIC


class Callback:
    """
    Hooks invoked while a frame is read from a dump file.

    Subclasses override the hooks they need. All hooks do nothing by
    default. Hooks are called in order from within
    :meth:`mddump.io.reader.LAMMPSDumpReader.read_frame`; hooks that
    have already fired when an error is detected are not retracted.
    """

    def start_of_timestep(self, reader: BaseReader) -> None:
        pass

    def box_bounds(self, box: BoxBounds) -> None:
        pass

    def atom_line(self, atom: AtomData, reader: BaseReader) -> None:
        pass

    def end_of_timestep(self, reader: BaseReader) -> None:
        pass


class BaseReader:
    """
    Base class for trajectory readers.

    Subclasses must implement the :meth:`open` and :meth:`close` methods
    to handle the opening and closing of the file. The file handle is
    closed when the reader is used as a context manager and exits, or
    when the reader is garbage collected. Since the finalizer holds the
    instance dictionary, objects stored on the reader must only refer
    back to it weakly.
    """

    def __init__(self) -> None:
        # Create finalizer
        self._finalizer = weakref.finalize(self, self._release, self.__dict__)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @staticmethod
    def _release(state: dict[str, Any]) -> None:
        if (file := state.pop("_file", None)) is not None:
            file.close()

    @abstractmethod
    def open(self, *args, **kwargs) -> None:
        """
        Opens the trajectory file and stores a handle to it.
        """

        pass

    @abstractmethod
    def close(self) -> None:
        """
        Closes the trajectory file and deletes the handle.
        """

        pass
