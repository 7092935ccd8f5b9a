import sys, os; sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# --- Synthetic poses shared by the test modules ---
import pytest

# Front-facing standing pose in image coordinates (y grows downward).
# Subject's left side sits at smaller x.
STANDING = {
    0: (0.50, 0.20),                                   # nose
    1: (0.49, 0.18), 2: (0.48, 0.18), 3: (0.47, 0.18),
    4: (0.51, 0.18), 5: (0.52, 0.18), 6: (0.53, 0.18),
    7: (0.46, 0.19), 8: (0.54, 0.19),
    9: (0.49, 0.23), 10: (0.51, 0.23),
    11: (0.42, 0.30), 12: (0.58, 0.30),                # shoulders
    13: (0.40, 0.42), 14: (0.60, 0.42),                # elbows
    15: (0.39, 0.54), 16: (0.61, 0.54),                # wrists
    17: (0.39, 0.56), 18: (0.61, 0.56),
    19: (0.385, 0.57), 20: (0.615, 0.57),
    21: (0.395, 0.55), 22: (0.605, 0.55),
    23: (0.45, 0.60), 24: (0.55, 0.60),                # hips
    25: (0.45, 0.75), 26: (0.55, 0.75),                # knees
    27: (0.45, 0.90), 28: (0.55, 0.90),                # ankles
    29: (0.44, 0.92), 30: (0.56, 0.92),
    31: (0.47, 0.93), 32: (0.53, 0.93),
}


def make_pose(overrides=None, visibility=0.9, hidden=()):
    """List of 33 landmark dicts; `overrides` maps index -> (x, y), `hidden` get visibility 0.1."""
    pts = dict(STANDING)
    pts.update(overrides or {})
    out = []
    for i in range(33):
        x, y = pts[i]
        out.append({"x": x, "y": y, "z": 0.0, "visibility": 0.1 if i in hidden else visibility})
    return out


# Right arm straight up, wrist above the nose.
RIGHT_ARM_UP = {14: (0.60, 0.18), 16: (0.61, 0.06)}


def make_sample(overall, segments=None, t_ms=0.0, video_time=None, poses=True):
    from dccore.samples import SessionSample
    from dccore.segments import BodySegment
    from dccore.normalize import as_pose
    from dccore.similarity import ComparisonResult

    if segments is None:
        segments = {seg: overall for seg in BodySegment}
    comp = ComparisonResult(overall=overall, segments=dict(segments), timestamp=t_ms)
    pose = as_pose(make_pose()) if poses else None
    return SessionSample(
        comparison=comp,
        ref_pose=pose,
        user_pose=pose,
        video_time=(t_ms / 1000.0 if video_time is None else video_time) if poses else None,
    )


def make_session(overalls, interval_ms=1000.0, segments_fn=None):
    """One sample per score, `interval_ms` apart; video_time follows the timestamps."""
    out = []
    for i, v in enumerate(overalls):
        segs = segments_fn(i, v) if segments_fn else None
        out.append(make_sample(v, segments=segs, t_ms=i * interval_ms))
    return out


@pytest.fixture
def standing():
    return make_pose()


@pytest.fixture
def arm_up():
    return make_pose(RIGHT_ARM_UP)


class FakeClock:
    def __init__(self, start=0.0):
        self.now = float(start)

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()
