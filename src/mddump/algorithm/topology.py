"""
Topology transformations
========================

This module contains algorithms for wrapping particle coordinates back
into the simulation box across periodic boundaries.
"""

import numpy as np


def wrap_coordinate(
    value: float,
    lo: float,
    hi: float,
    lower_periodic: bool,
    upper_periodic: bool,
) -> float:
    r"""
    Wraps a single coordinate back into the half-open range
    :math:`[\mathrm{lo},\,\mathrm{hi})` across periodic boundaries.

    At most one box length is added or subtracted, so a coordinate that
    is more than one box length outside the range is only moved closer
    to it. LAMMPS only remaps atoms on reneighboring steps, so
    coordinates in dump files are at most slightly outside the box.

    Parameters
    ----------
    value : `float`
        Coordinate.

    lo : `float`
        Lower bound of the range. Use :code:`0.0` for scaled
        coordinates.

    hi : `float`
        Upper bound of the range. Use :code:`1.0` for scaled
        coordinates.

    lower_periodic : `bool`
        Specifies whether the lower side of the box is periodic.

    upper_periodic : `bool`
        Specifies whether the upper side of the box is periodic.

    Returns
    -------
    value : `float`
        Wrapped coordinate.
    """

    if value < lo and lower_periodic:
        return value + (hi - lo)
    if value >= hi and upper_periodic:
        return value - (hi - lo)
    return value


def wrap(
    values: np.ndarray[float],
    lo: float,
    hi: float,
    lower_periodic: bool,
    upper_periodic: bool,
    *,
    in_place: bool = False,
) -> np.ndarray[float]:
    r"""
    Wraps coordinates back into the half-open range
    :math:`[\mathrm{lo},\,\mathrm{hi})` across periodic boundaries.

    This is the vectorized counterpart of :func:`wrap_coordinate` and
    follows the same single-shift rule.

    Parameters
    ----------
    values : `numpy.ndarray`
        Coordinates along one axis.

        **Shape**: :math:`(N,)`.

    lo : `float`
        Lower bound of the range.

    hi : `float`
        Upper bound of the range.

    lower_periodic : `bool`
        Specifies whether the lower side of the box is periodic.

    upper_periodic : `bool`
        Specifies whether the upper side of the box is periodic.

    in_place : `bool`, keyword-only, default: :code:`False`
        Determines whether the input array is modified in-place.

    Returns
    -------
    values : `numpy.ndarray`
        Wrapped coordinates.

        **Shape**: :math:`(N,)`.
    """

    if not in_place:
        values = np.array(values, dtype=float)
    below = values < lo if lower_periodic else np.zeros(values.shape, dtype=bool)
    above = (values >= hi) & ~below if upper_periodic else None
    values[below] += hi - lo
    if above is not None:
        values[above] -= hi - lo
    return values
