# dccore/__init__.py
from .normalize import normalize_pose, mirror_pose
from .similarity import ComparisonResult, compare_poses
from .session import LatestPose, PracticeSession

__version__ = "0.1.0"
