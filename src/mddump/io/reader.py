from __future__ import annotations
from collections.abc import Generator, Iterable
import io
import logging
from pathlib import Path
from typing import Any, BinaryIO
import warnings
import weakref

import numpy as np

from .base import BaseReader, Boundary, BoxBounds, Callback
from .errors import (
    AtomCountMismatchError,
    FieldCountMismatchError,
    FileOpenError,
    MalformedAtomLineError,
    MalformedHeaderError,
    MissingColumnError,
    PrematureEOFError,
    ReaderStateError,
    UnsupportedGeometryError,
)
from .properties import AtomData, Property, convert_token, resolve_fields
from .recorder import FrameRecorder
from ..algorithm.topology import wrap, wrap_coordinate

logger = logging.getLogger(__name__)


class TextFrameDecoder:
    """
    Decoder for frames in LAMMPS dump files written in the text format.

    Each call to :meth:`read_frame` consumes lines until the first line
    of the next frame, which is left unread, or until the end of the
    file.

    Parameters
    ----------
    reader : `LAMMPSDumpReader`
        Reader whose frame state is updated and that is passed to the
        callback hooks.
    """

    # Sections in the order LAMMPS writes them, keyed by the first word
    # after "ITEM:"
    _SECTIONS = {
        "UNITS": 0,
        "TIME": 1,
        "TIMESTEP": 2,
        "NUMBER": 3,
        "BOX": 4,
        "ATOMS": 5,
    }
    _FRAME_START_SECTIONS = {"UNITS", "TIME", "TIMESTEP"}
    _TRICLINIC_KEYWORDS = {"xy", "xz", "yz", "abc", "origin"}

    def __init__(self, reader: LAMMPSDumpReader) -> None:
        self._reader = weakref.ref(reader)

    def _read_value(self, file: BinaryIO, section: str) -> str:
        line = file.readline().decode()
        if not line:
            raise PrematureEOFError(
                f"'{self._reader().filename.name}' ended before the value "
                f"of the 'ITEM: {section}' section."
            )
        return line.strip()

    def _parse_value(self, file: BinaryIO, section: str, kind: type) -> int | float:
        value = self._read_value(file, section)
        try:
            return kind(value)
        except ValueError:
            raise MalformedHeaderError(
                f"Invalid value '{value}' in the 'ITEM: {section}' section "
                f"of '{self._reader().filename.name}'."
            ) from None

    def _parse_box(self, file: BinaryIO, tokens: list[str], line: str) -> BoxBounds:
        if self._TRICLINIC_KEYWORDS.intersection(tokens):
            raise UnsupportedGeometryError(
                f"'{self._reader().filename.name}' contains a triclinic "
                "simulation box, which is not supported."
            )
        if len(tokens) < 6:
            raise MalformedHeaderError(
                "Malformed 'ITEM: BOX BOUNDS' line. Expected 6 tokens, "
                f"but found {len(tokens)}: '{line.rstrip()}'."
            )
        boundaries = tuple(Boundary.from_letters(t) for t in tokens[3:6])
        lo = np.empty(3)
        hi = np.empty(3)
        for axis in range(3):
            line = file.readline().decode()
            if not line:
                raise PrematureEOFError(
                    f"'{self._reader().filename.name}' ended inside the "
                    "'ITEM: BOX BOUNDS' section."
                )
            bounds = line.split()
            if len(bounds) < 2:
                raise MalformedHeaderError(
                    "Malformed box bounds line. Expected 2 tokens, but "
                    f"found {len(bounds)}: '{line.rstrip()}'."
                )
            try:
                lo[axis], hi[axis] = float(bounds[0]), float(bounds[1])
            except ValueError:
                raise MalformedHeaderError(
                    f"Invalid box bounds line '{line.rstrip()}'."
                ) from None
        return BoxBounds(lo, hi, boundaries)

    def _plan_columns(
        self,
        columns: list[str],
        properties: tuple[Property, ...],
        box: BoxBounds | None,
    ) -> list[tuple[Property, int, tuple[float, float, bool, bool] | None]]:
        """
        Finds the column of each requested property and the periodic
        wrapping parameters of wrapped coordinates.
        """

        indices = {name: col for col, name in enumerate(columns)}
        plan = []
        for prop in properties:
            if (col := indices.get(prop.name)) is None:
                raise MissingColumnError(prop.name, columns, self._reader().timestep)
            wrapping = None
            if prop.wrap is not None and box is not None:
                axis, scaled = prop.wrap
                wrapping = (
                    *((0.0, 1.0) if scaled else (float(box.lo[axis]), float(box.hi[axis]))),
                    box.is_periodic(axis, 0),
                    box.is_periodic(axis, 1),
                )
            plan.append((prop, col, wrapping))
        return plan

    def read_frame(
        self, file: BinaryIO, properties: tuple[Property, ...], callback: Callback
    ) -> bool:
        """
        Reads the next frame and invokes the callback hooks.

        Parameters
        ----------
        file : `io.BinaryIO`
            Handle to the dump file.

        properties : `tuple`
            Requested properties.

        callback : `mddump.io.base.Callback`
            Callback hooks.

        Returns
        -------
        success : `bool`
            `True` if a frame was read and `False` if the end of the
            file had already been reached.
        """

        reader = self._reader()
        in_frame = False
        section = -1
        box = None
        n_columns = None
        plan = None

        while True:
            raw = file.readline()
            if not raw:
                break
            line = raw.decode()
            tokens = line.split()
            if not tokens:
                continue

            if tokens[0] == "ITEM:":
                name = tokens[1] if len(tokens) > 1 else ""
                if (rank := self._SECTIONS.get(name)) is None:
                    raise MalformedHeaderError(
                        f"Unknown section '{line.rstrip()}' in "
                        f"'{reader.filename.name}'."
                    )

                # A frame header that was already read marks the start
                # of the next frame
                if in_frame and name in self._FRAME_START_SECTIONS and rank <= section:
                    callback.end_of_timestep(reader)
                    file.seek(-len(raw), io.SEEK_CUR)
                    return True
                if not in_frame:
                    in_frame = True
                    callback.start_of_timestep(reader)
                section = max(section, rank)

                if name == "TIMESTEP":
                    reader._timestep = self._parse_value(file, "TIMESTEP", int)
                elif name == "NUMBER":
                    reader._n_atoms = self._parse_value(file, "NUMBER OF ATOMS", int)
                elif name == "BOX":
                    reader._box = box = self._parse_box(file, tokens, line)
                    callback.box_bounds(box)
                elif name == "ATOMS":
                    n_columns = len(tokens) - 2
                    plan = self._plan_columns(tokens[2:], properties, box)
                elif name == "TIME":
                    reader._time = self._parse_value(file, "TIME", float)
                else:
                    reader._units_style = self._read_value(file, "UNITS")
                continue

            # Atom data line
            if plan is None:
                raise MalformedAtomLineError(
                    f"Found atom data before the 'ITEM: ATOMS' line in "
                    f"'{reader.filename.name}': '{line.rstrip()}'."
                )
            if len(tokens) != n_columns:
                raise MalformedAtomLineError(
                    "Mismatch between the number of columns reported and "
                    f"the number of columns read. The 'ITEM: ATOMS' line "
                    f"indicates {n_columns} columns, but {len(tokens)} "
                    f"were read: '{line.rstrip()}'."
                )
            atom = AtomData()
            for prop, col, wrapping in plan:
                try:
                    value = convert_token(prop, tokens[col])
                except (ValueError, OverflowError):
                    raise MalformedAtomLineError(
                        f"Invalid value '{tokens[col]}' for '{prop.name}' "
                        f"in atom data line '{line.rstrip()}'."
                    ) from None
                if wrapping is not None:
                    value = wrap_coordinate(value, *wrapping)
                setattr(atom, prop.name, value)
            callback.atom_line(atom, reader)

        if not in_frame:
            return False
        callback.end_of_timestep(reader)
        return True


class BinaryFrameDecoder:
    """
    Decoder for frames in LAMMPS dump files written in the binary
    format.

    LAMMPS writes binary dump files in the native byte order of the
    machine that ran the simulation and does not record it in the file,
    so the byte order must be known in advance.

    Parameters
    ----------
    reader : `LAMMPSDumpReader`
        Reader whose frame state is updated and that is passed to the
        callback hooks.

    byte_order : `str`, default: :code:`"="`
        Byte order of the file.

        **Valid values**: :code:`"="` (native), :code:`"<"`
        (little-endian), and :code:`">"` (big-endian).
    """

    def __init__(self, reader: LAMMPSDumpReader, byte_order: str = "=") -> None:
        self._reader = weakref.ref(reader)
        self._int32 = np.dtype(np.int32).newbyteorder(byte_order)
        self._int64 = np.dtype(np.int64).newbyteorder(byte_order)
        self._float64 = np.dtype(np.float64).newbyteorder(byte_order)

    def _read(self, file: BinaryIO, dtype: np.dtype, count: int = 1) -> np.ndarray:
        n_bytes = dtype.itemsize * count
        buffer = file.read(n_bytes)
        if len(buffer) != n_bytes:
            raise PrematureEOFError(
                f"'{self._reader().filename.name}' ended inside a frame "
                f"header. Expected {n_bytes} bytes, but only "
                f"{len(buffer)} were read."
            )
        return np.frombuffer(buffer, dtype=dtype, count=count)

    def read_frame(
        self, file: BinaryIO, properties: tuple[Property, ...], callback: Callback
    ) -> bool:
        """
        Reads the next frame and invokes the callback hooks.

        Parameters
        ----------
        file : `io.BinaryIO`
            Handle to the dump file.

        properties : `tuple`
            All properties stored per atom, in the order they were
            written.

        callback : `mddump.io.base.Callback`
            Callback hooks.

        Returns
        -------
        success : `bool`
            `True` if a frame was read and `False` if the end of the
            file had already been reached.
        """

        reader = self._reader()

        # Read timestep, which is the only place the file may end
        buffer = file.read(self._int64.itemsize)
        if not buffer:
            return False
        if len(buffer) != self._int64.itemsize:
            raise PrematureEOFError(
                f"'{reader.filename.name}' ended inside a timestep number."
            )
        reader._timestep = int(np.frombuffer(buffer, dtype=self._int64)[0])
        reader._n_atoms = n_atoms = int(self._read(file, self._int64)[0])

        if self._read(file, self._int32)[0]:
            raise UnsupportedGeometryError(
                f"Frame at timestep {reader._timestep} in "
                f"'{reader.filename.name}' has a triclinic simulation "
                "box, which is not supported."
            )
        codes = self._read(file, self._int32, 6).tolist()
        boundaries = tuple(
            (Boundary.from_code(codes[2 * i]), Boundary.from_code(codes[2 * i + 1]))
            for i in range(3)
        )
        bounds = self._read(file, self._float64, 6)
        reader._box = box = BoxBounds(bounds[::2], bounds[1::2], boundaries)

        n_fields = int(self._read(file, self._int32)[0])
        if n_fields != len(properties):
            raise FieldCountMismatchError(
                f"Expected {len(properties)} fields per atom, but "
                f"'{reader.filename.name}' reports {n_fields}. When "
                "reading binary dump files, the field specification must "
                "list every field in the file in the order they were "
                "written."
            )
        n_blocks = int(self._read(file, self._int32)[0])

        callback.start_of_timestep(reader)
        callback.box_bounds(box)

        wrapped_columns = []
        for col, prop in enumerate(properties):
            if prop.wrap is not None:
                axis, scaled = prop.wrap
                wrapped_columns.append(
                    (
                        col,
                        *((0.0, 1.0) if scaled else (box.lo[axis], box.hi[axis])),
                        box.is_periodic(axis, 0),
                        box.is_periodic(axis, 1),
                    )
                )
        integer_columns = [col for col, prop in enumerate(properties) if prop.kind is int]
        names = [prop.name for prop in properties]

        # Atom data are stored in blocks written by each processor
        n_streamed = 0
        for block in range(n_blocks):
            n_values = int(self._read(file, self._int32)[0])
            if n_values < 0:
                raise MalformedHeaderError(
                    f"Processor block {block} of the frame at timestep "
                    f"{reader._timestep} has a negative size ({n_values})."
                )
            buffer = file.read(self._float64.itemsize * n_values)
            truncated = len(buffer) != self._float64.itemsize * n_values
            values = np.frombuffer(
                buffer,
                dtype=self._float64,
                count=len(buffer) // self._float64.itemsize,
            )
            n_block_atoms, n_leftover = (
                divmod(len(values), n_fields) if n_fields else (0, len(values))
            )
            if n_leftover and not truncated:
                warnings.warn(
                    f"Processor block {block} of the frame at timestep "
                    f"{reader._timestep} contains {n_values} values, which "
                    f"is not a multiple of {n_fields} fields per atom. The "
                    f"last {n_leftover} value(s) were discarded.",
                    RuntimeWarning,
                )

            data = values[: n_block_atoms * n_fields].reshape(n_block_atoms, n_fields)
            if wrapped_columns:
                data = data.copy()
                for col, lo, hi, lower_periodic, upper_periodic in wrapped_columns:
                    wrap(data[:, col], lo, hi, lower_periodic, upper_periodic, in_place=True)
            rows = data.tolist()
            for row in rows:
                for col in integer_columns:
                    try:
                        row[col] = int(row[col])
                    except (ValueError, OverflowError):
                        raise MalformedAtomLineError(
                            f"Invalid value {row[col]} for '{names[col]}' in "
                            f"atom {n_streamed + 1} of the frame at timestep "
                            f"{reader._timestep}."
                        ) from None
                callback.atom_line(AtomData(**dict(zip(names, row))), reader)
                n_streamed += 1

            if truncated:
                raise PrematureEOFError(
                    f"'{reader.filename.name}' ended inside processor block "
                    f"{block} of the frame at timestep {reader._timestep}."
                )

        if n_streamed != n_atoms:
            raise AtomCountMismatchError(n_streamed, n_atoms)

        callback.end_of_timestep(reader)
        return True


class LAMMPSDumpReader(BaseReader):
    """
    LAMMPS dump file reader.

    This class streams per-atom data from LAMMPS dump files written in
    the text or binary formats with the :code:`atom` or :code:`custom`
    styles to a :class:`mddump.io.base.Callback` object, one frame per
    call to :meth:`read_frame`. Notably, it supports

    * frame headers with units and/or time information (using
      :code:`dump_modify units yes` and/or
      :code:`dump_modify time yes`, respectively) in text files,
    * frames with different numbers of atoms,
    * any combination of (un)scaled and (un)wrapped coordinates, with
      wrapped coordinates remapped into the simulation box across
      periodic boundaries, and
    * binary files written by any number of processors.

    Only orthogonal simulation boxes are supported. Frames with
    triclinic boxes raise a
    :class:`mddump.io.errors.UnsupportedGeometryError`.

    .. important::

       Text files are self-describing, so the field specification only
       needs to list the attributes to read. Binary files do not store
       attribute names, so the field specification must list *every*
       attribute in the file, in the order they were written.

    .. note::

       The number of atoms in a text frame is not checked against the
       :code:`ITEM: NUMBER OF ATOMS` header, whereas a mismatch in a
       binary frame raises a
       :class:`mddump.io.errors.AtomCountMismatchError`.

    .. seealso::

       For more information on the LAMMPS dump file format, see the
       `dump command <https://docs.lammps.org/dump.html>`_ page of the
       LAMMPS documentation.

    Parameters
    ----------
    filename : `str` or `pathlib.Path`, positional-only, optional
        Filename or path to the dump file. If not specified, a file
        must be opened with :meth:`open` before reading.

    binary : `bool`, default: :code:`False`
        Specifies whether the dump file is in the binary format.

    byte_order : `str`, keyword-only, default: :code:`"="`
        Byte order of binary dump files. LAMMPS writes binary dump
        files in the native byte order of the machine that ran the
        simulation, and no conversion or detection is performed.

        **Valid values**: :code:`"="` (native), :code:`"<"`
        (little-endian), and :code:`">"` (big-endian).

    Examples
    --------
    To print the wrapped positions of all atoms in
    :code:`dump.lammpstrj`:

    >>> class Printer(Callback):
    ...     def atom_line(self, atom, reader):
    ...         print(reader.timestep, atom.id, atom.x, atom.y, atom.z)
    >>> with LAMMPSDumpReader("dump.lammpstrj") as reader:
    ...     while reader.read_frame("id x y z", Printer()):
    ...         pass

    Frames can also be collected into `pandas.DataFrame` objects:

    >>> reader = LAMMPSDumpReader("dump.bin", binary=True)
    >>> frames = reader.read_frames("id type xs ys zs")
    >>> frames[0]["atoms"].head()
    """

    _BYTE_ORDERS = ("=", "<", ">")
    _EXTENSIONS = {".dump", ".lammpsdump", ".lammpstrj", ".bin"}
    _FORMAT = "LAMMPSDUMP"

    def __init__(
        self,
        filename: str | Path | None = None,
        /,
        binary: bool = False,
        *,
        byte_order: str = "=",
    ) -> None:
        super().__init__()

        if byte_order not in self._BYTE_ORDERS:
            raise ValueError(
                f"Invalid byte order '{byte_order}'. Valid values: '"
                + "', '".join(self._BYTE_ORDERS)
                + "'."
            )
        self._byte_order = byte_order
        self._binary = binary
        self._filename = None
        self._reading = False
        self._reset_frame_state()

        if filename is not None:
            self.open(filename, binary)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"{None if self._filename is None else repr(self._filename.name)}, "
            f"binary={self._binary}, byte_order='{self._byte_order}')"
        )

    def _reset_frame_state(self) -> None:
        self._timestep = -1
        self._n_atoms = 0
        self._box = None
        self._time = None
        self._units_style = None

    def open(self, filename: str | Path, binary: bool = False) -> None:
        """
        Opens a LAMMPS dump file and stores a handle to it. Any
        previously opened file is closed first.

        Parameters
        ----------
        filename : `str` or `pathlib.Path`
            Filename or path to the dump file.

        binary : `bool`, default: :code:`False`
            Specifies whether the dump file is in the binary format.

        Raises
        ------
        FileOpenError
            If the file cannot be opened. The reader is left closed
            and :attr:`filename` is reset to `None`.
        """

        self.close()
        self._filename = self._decoder = None
        self._reset_frame_state()
        filename = Path(filename)
        try:
            self._file = open(filename, "rb")
        except OSError as error:
            raise FileOpenError(error.errno, error.strerror, str(filename)) from error

        self._filename = filename.resolve()
        self._binary = binary
        self._decoder = (
            BinaryFrameDecoder(self, self._byte_order)
            if binary
            else TextFrameDecoder(self)
        )
        logger.info(
            f"Opened {'binary' if binary else 'text'} LAMMPS dump file "
            f"'{self._filename.name}'."
        )

    def close(self) -> None:
        """
        Closes the LAMMPS dump file and deletes the handle. Does
        nothing if no file is open.
        """

        if hasattr(self, "_file"):
            self._file.close()
            del self._file
            logger.info(f"Closed LAMMPS dump file '{self._filename.name}'.")

    def read_frame(
        self, fields: str | Iterable[str], callback: Callback | None = None
    ) -> bool:
        """
        Reads the next frame from the dump file.

        Parameters
        ----------
        fields : `str` or iterable of `str`
            Whitespace-separated string or sequence of LAMMPS dump
            attributes to read, like :code:`"id type x y z"`. For
            binary dump files, every attribute in the file must be
            listed in the order they were written.

            **Valid values**: :code:`"id"`, :code:`"type"`,
            :code:`"mol"`, :code:`"mass"`, :code:`"x"`, :code:`"y"`,
            :code:`"z"`, :code:`"xs"`, :code:`"ys"`, :code:`"zs"`,
            :code:`"xu"`, :code:`"yu"`, :code:`"zu"`, :code:`"xsu"`,
            :code:`"ysu"`, :code:`"zsu"`, :code:`"ix"`, :code:`"iy"`,
            :code:`"iz"`, :code:`"vx"`, :code:`"vy"`, :code:`"vz"`,
            :code:`"fx"`, :code:`"fy"`, :code:`"fz"`, :code:`"q"`,
            :code:`"mux"`, :code:`"muy"`, :code:`"muz"`, and
            :code:`"mu"`.

        callback : `mddump.io.base.Callback`, optional
            Hooks invoked as the frame is read. If not specified, the
            frame is read and only the frame state is updated.

        Returns
        -------
        success : `bool`
            `True` if a frame was read and `False` if there are no more
            frames in the file.

        Raises
        ------
        ReaderStateError
            If no file is open or a frame is already being read.

        UnknownFieldError
            If `fields` contains an unsupported attribute. Raised before
            any hook is invoked.
        """

        if not hasattr(self, "_file"):
            raise ReaderStateError("read_frame() was called while no file is open.")
        if self._reading:
            raise ReaderStateError(
                f"A frame is already being read from '{self._filename.name}'."
            )
        properties = resolve_fields(fields)
        if callback is None:
            callback = Callback()

        self._reading = True
        try:
            success = self._decoder.read_frame(self._file, properties, callback)
        finally:
            self._reading = False
        if success:
            logger.debug(
                f"Read frame at timestep {self._timestep} "
                f"({self._n_atoms:,} atoms) from '{self._filename.name}'."
            )
        return success

    def iter_frames(
        self, fields: str | Iterable[str], callback: Callback | None = None
    ) -> Generator[int, None, None]:
        """
        Reads the remaining frames in the dump file.

        Parameters
        ----------
        fields : `str` or iterable of `str`
            LAMMPS dump attributes to read. See :meth:`read_frame`.

        callback : `mddump.io.base.Callback`, optional
            Hooks invoked as each frame is read.

        Yields
        ------
        timestep : `int`
            Timestep of the frame that was just read.
        """

        while self.read_frame(fields, callback):
            yield self._timestep

    def read_frames(self, fields: str | Iterable[str]) -> list[dict[str, Any]]:
        """
        Reads the remaining frames in the dump file into memory.

        Parameters
        ----------
        fields : `str` or iterable of `str`
            LAMMPS dump attributes to read. See :meth:`read_frame`.

        Returns
        -------
        frames : `list`
            Data from the frames. See
            :class:`mddump.io.recorder.FrameRecorder`.
        """

        recorder = FrameRecorder(fields)
        for _ in self.iter_frames(fields, recorder):
            pass
        return recorder.frames

    @property
    def filename(self) -> Path | None:
        """
        Path to the open (or last opened) dump file, or `None` if no
        file has been opened or the last attempt to open one failed.
        """

        return self._filename

    @property
    def binary(self) -> bool:
        """
        Specifies whether the dump file is in the binary format.
        """

        return self._binary

    @property
    def byte_order(self) -> str:
        """
        Byte order used to decode binary dump files.
        """

        return self._byte_order

    @property
    def is_open(self) -> bool:
        """
        Specifies whether a dump file is open.
        """

        return hasattr(self, "_file")

    @property
    def timestep(self) -> int:
        """
        Timestep of the last frame read. Is :code:`-1` if no frame has
        been read.
        """

        return self._timestep

    @property
    def n_atoms(self) -> int:
        """
        Number of atoms declared in the header of the last frame read.
        """

        return self._n_atoms

    @property
    def box(self) -> BoxBounds | None:
        """
        Simulation box of the last frame read. Is `None` if no box has
        been read.
        """

        return self._box

    @property
    def time(self) -> float | None:
        """
        Simulation time of the last frame read. Only available for text
        dump files written with :code:`dump_modify time yes`.
        """

        return self._time

    @property
    def units_style(self) -> str | None:
        """
        Style of units of the last frame read. Only available for text
        dump files written with :code:`dump_modify units yes`.
        """

        return self._units_style
