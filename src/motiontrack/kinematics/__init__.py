from .estimator import estimate
from .export import load_motion, save_motion, to_records
from .smoothing import smooth
from .types import KinematicsConfig, KinematicsError, MotionSample

__all__ = [
    # types
    "MotionSample",
    "KinematicsConfig",
    "KinematicsError",
    # estimator
    "estimate",
    # smoothing
    "smooth",
    # export
    "to_records",
    "save_motion",
    "load_motion",
]
