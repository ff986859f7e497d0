import pathlib
import sys

import numpy as np
import pandas as pd

sys.path.insert(0, f"{pathlib.Path(__file__).parents[1].resolve().as_posix()}/src")
from mddump.io.reader import LAMMPSDumpReader  # noqa: E402
from mddump.io.recorder import FrameRecorder  # noqa: E402

DATA_DIRECTORY = pathlib.Path(__file__).parents[0].resolve() / "data"


def test_class_FrameRecorder():

    # TEST CASE 1: Frames recorded through the reader
    with LAMMPSDumpReader(DATA_DIRECTORY / "trajectories/periodic.lammpstrj") as reader:
        frames = reader.read_frames("id x xu")
    assert [f["timestep"] for f in frames] == [0, 100, 200]
    assert [f["n_atoms"] for f in frames] == [3, 3, 2]
    atoms = frames[0]["atoms"]
    assert isinstance(atoms, pd.DataFrame)
    assert list(atoms.columns) == ["id", "x", "xu"]
    assert atoms["id"].dtype == np.int64
    assert atoms["x"].tolist() == [1.0, 9.0, 0.0]
    assert atoms["xu"].tolist() == [11.0, -1.0, 0.0]
    assert np.allclose(frames[2]["box"].hi, (10.0, 10.0, 5.0))

    # TEST CASE 2: Recorder used directly
    recorder = FrameRecorder(["id"])
    with LAMMPSDumpReader(DATA_DIRECTORY / "trajectories/headers.lammpstrj") as reader:
        while reader.read_frame("id xs", recorder):
            pass
    assert len(recorder.frames) == 2
    assert recorder.frames[1]["atoms"]["id"].tolist() == [1, 2]
