"""
Per-atom properties
===================

This module contains the closed set of per-atom properties that can be
read from LAMMPS dump files, the record that holds them, and the
mapping from LAMMPS dump attribute names to record fields.
"""

from __future__ import annotations
from collections.abc import Iterable
from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, NamedTuple

from .errors import UnknownFieldError


class Property(NamedTuple):
    """
    Per-atom property descriptor.

    Parameters
    ----------
    name : `str`
        LAMMPS dump attribute name, which is also the name of the
        :class:`AtomData` field it populates.

    kind : `type`
        Numeric type of the property, either `int` or `float`.

    wrap : `tuple` or `None`
        :code:`(axis, scaled)` for coordinates that are wrapped back
        into the simulation box across periodic boundaries, where
        `axis` is :code:`0`, :code:`1`, or :code:`2` and `scaled`
        specifies whether the coordinate is a fraction of the box
        length. `None` for all other properties, including unwrapped
        coordinates.
    """

    name: str
    kind: type
    wrap: tuple[int, bool] | None = None


def _build_properties() -> dict[str, Property]:
    properties = {
        name: Property(name, int) for name in ("id", "type", "mol", "ix", "iy", "iz")
    }
    properties["mass"] = Property("mass", float)
    for axis, dim in enumerate("xyz"):
        properties[dim] = Property(dim, float, (axis, False))
        properties[f"{dim}s"] = Property(f"{dim}s", float, (axis, True))
        properties[f"{dim}u"] = Property(f"{dim}u", float)
        properties[f"{dim}su"] = Property(f"{dim}su", float)
    for prefix in ("v", "f", "mu"):
        for dim in "xyz":
            properties[f"{prefix}{dim}"] = Property(f"{prefix}{dim}", float)
    properties["mu"] = Property("mu", float)
    properties["q"] = Property("q", float)
    return properties


PROPERTIES = _build_properties()


@dataclass(slots=True)
class AtomData:
    """
    Per-atom record passed to :meth:`mddump.io.base.Callback.atom_line`.

    Only the fields requested when reading a frame are populated. All
    other fields are zero.
    """

    id: int = 0
    type: int = 0
    mol: int = 0
    mass: float = 0.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    xs: float = 0.0
    ys: float = 0.0
    zs: float = 0.0
    xu: float = 0.0
    yu: float = 0.0
    zu: float = 0.0
    xsu: float = 0.0
    ysu: float = 0.0
    zsu: float = 0.0
    ix: int = 0
    iy: int = 0
    iz: int = 0
    vx: float = 0.0
    vy: float = 0.0
    vz: float = 0.0
    fx: float = 0.0
    fy: float = 0.0
    fz: float = 0.0
    q: float = 0.0
    mux: float = 0.0
    muy: float = 0.0
    muz: float = 0.0
    mu: float = 0.0

    def as_dict(self, names: Iterable[str] | None = None) -> dict[str, Any]:
        """
        Returns the values of the specified fields (or all fields) by
        name.

        Parameters
        ----------
        names : iterable of `str`, optional
            Fields to return. If not specified, all fields are returned.

        Returns
        -------
        values : `dict`
            Field values keyed by field name.
        """

        if names is None:
            names = (f.name for f in dataclass_fields(self))
        return {name: getattr(self, name) for name in names}


def resolve_property(name: str) -> Property:
    """
    Looks up the descriptor of a per-atom property.

    Parameters
    ----------
    name : `str`
        LAMMPS dump attribute name.

    Returns
    -------
    prop : `Property`
        Property descriptor.

    Raises
    ------
    UnknownFieldError
        If `name` is not a supported per-atom property.
    """

    try:
        return PROPERTIES[name]
    except KeyError:
        raise UnknownFieldError(name) from None


def resolve_fields(fields: str | Iterable[str]) -> tuple[Property, ...]:
    """
    Resolves a field specification into property descriptors.

    Parameters
    ----------
    fields : `str` or iterable of `str`
        Whitespace-separated string or sequence of LAMMPS dump
        attribute names.

    Returns
    -------
    properties : `tuple`
        Property descriptors in the order they were specified.
    """

    if isinstance(fields, str):
        fields = fields.split()
    return tuple(resolve_property(name) for name in fields)


def numeric_kind(name: str) -> type:
    """
    Numeric type (`int` or `float`) of a per-atom property.
    """

    return resolve_property(name).kind


def convert_token(prop: Property, token: str) -> int | float:
    """
    Converts a text token to the numeric type of a property.

    Integer properties written in floating-point notation (e.g.,
    :code:`"3.0"`) are truncated toward zero.

    Raises
    ------
    ValueError
        If `token` is not a number.
    """

    if prop.kind is int:
        try:
            return int(token)
        except ValueError:
            return int(float(token))
    return float(token)
