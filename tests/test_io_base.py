import pathlib
import sys

import numpy as np
import pytest

sys.path.insert(0, f"{pathlib.Path(__file__).parents[1].resolve().as_posix()}/src")
from mddump.io.base import Boundary, BoxBounds  # noqa: E402
from mddump.io.errors import MalformedHeaderError  # noqa: E402


def test_class_Boundary():

    # TEST CASE 1: Binary codes
    assert [Boundary.from_code(c) for c in range(4)] == [
        Boundary.PERIODIC,
        Boundary.FIXED,
        Boundary.SHRINK_WRAPPED,
        Boundary.MINIMUM_IMAGE,
    ]
    with pytest.raises(MalformedHeaderError):
        Boundary.from_code(4)

    # TEST CASE 2: Text letters
    assert Boundary.from_letters("fm") == (Boundary.FIXED, Boundary.MINIMUM_IMAGE)
    with pytest.raises(MalformedHeaderError):
        Boundary.from_letters("p")
    with pytest.raises(MalformedHeaderError):
        Boundary.from_letters("px")


def test_class_BoxBounds():

    box = BoxBounds((0.0, -1.0, 2.0), [10.0, 1.0, 4.0], (("p", "p"), ("f", "s"), ("m", "p")))

    # TEST CASE 1: Bounds and lengths
    assert np.allclose(box.lengths, (10.0, 2.0, 2.0))
    assert box.boundaries[1] == (Boundary.FIXED, Boundary.SHRINK_WRAPPED)
    assert box.is_periodic(0, 0) and box.is_periodic(2, 1)
    assert not box.is_periodic(1, 0) and not box.is_periodic(2, 0)
    assert repr(box) == (
        "BoxBounds(lo=[0.0, -1.0, 2.0], hi=[10.0, 1.0, 4.0], boundaries='pp fs mp')"
    )

    # TEST CASE 2: Immutable
    with pytest.raises(AttributeError):
        box.lo = np.zeros(3)
    with pytest.raises(ValueError):
        box.lo[0] = 1.0

    # TEST CASE 3: Invalid shapes
    with pytest.raises(ValueError):
        BoxBounds((0.0, 0.0), (1.0, 1.0), (("p", "p"),) * 2)
    with pytest.raises(ValueError):
        BoxBounds((0.0,) * 3, (1.0,) * 3, (("p", "p"),) * 2)
