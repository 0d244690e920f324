from .detector import (
    DetectorConfig,
    OnnxYoloDetector,
    RoiDetector,
    candidate_score,
    decode_yolo_output,
    search_window,
    select_candidate,
)
from .sequence import TrackedSequence, load_tracked_sequence, save_tracked_sequence
from .tracker import RoiPropagationTracker
from .types import (
    BoundingBox,
    Candidate,
    DetectionError,
    DetectionStatus,
    DetectorFailure,
    Image,
    TrackedBox,
    TrackerConfig,
    TrackingError,
    TrackingProgress,
    TrackingStatus,
)

__all__ = [
    # types
    "Image",
    "BoundingBox",
    "Candidate",
    "DetectionStatus",
    "TrackedBox",
    "TrackerConfig",
    "TrackingProgress",
    "TrackingStatus",
    "DetectorFailure",
    "DetectionError",
    "TrackingError",
    # sequence
    "TrackedSequence",
    "save_tracked_sequence",
    "load_tracked_sequence",
    # detector
    "RoiDetector",
    "DetectorConfig",
    "OnnxYoloDetector",
    "search_window",
    "candidate_score",
    "select_candidate",
    "decode_yolo_output",
    # tracker
    "RoiPropagationTracker",
]
