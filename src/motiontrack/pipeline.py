import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from motiontrack.kinematics import (
    KinematicsConfig,
    KinematicsError,
    MotionSample,
    estimate,
    smooth,
)
from motiontrack.tracking import (
    BoundingBox,
    Image,
    RoiDetector,
    RoiPropagationTracker,
    TrackedSequence,
    TrackerConfig,
    TrackingError,
    TrackingStatus,
)
from motiontrack.tracking.tracker import ProgressListener

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AnalysisConfig:
    kinematics: KinematicsConfig = field(
        default_factory=lambda: KinematicsConfig(fps=10.0)
    )
    smoothing_window: int = 3
    tracker: TrackerConfig = field(default_factory=TrackerConfig)

    def validate(self) -> None:
        self.kinematics.validate()
        self.tracker.validate()
        if self.smoothing_window < 1:
            raise KinematicsError("smoothing_window must be at least 1")


@dataclass(slots=True)
class MotionAnalysis:
    sequence: TrackedSequence  # tracker output merged with user boxes
    raw: list[MotionSample]
    smoothed: list[MotionSample]
    status: TrackingStatus


def run_motion_analysis(
    frames: Sequence[Image],
    user_boxes: Mapping[int, BoundingBox],
    detector: RoiDetector,
    config: AnalysisConfig | None = None,
    on_progress: ProgressListener | None = None,
) -> MotionAnalysis:
    """
    Track from the earliest user-annotated frame, let user boxes override the
    tracker, then estimate and smooth the motion.
    """
    cfg = config or AnalysisConfig()
    cfg.validate()
    if not user_boxes:
        raise TrackingError("At least one frame needs a user-drawn box")

    anchor = min(user_boxes)
    tracker = RoiPropagationTracker(detector, cfg.tracker, on_progress=on_progress)
    with detector:
        tracked = tracker.track(frames, anchor, user_boxes[anchor])

    merged = tracked.with_overrides(user_boxes)
    raw = estimate(
        merged,
        fps=cfg.kinematics.fps,
        pixels_per_meter=cfg.kinematics.pixels_per_meter,
    )
    if not raw:
        raise KinematicsError(
            f"Only {len(merged)} tracked frame(s); motion needs at least 2"
        )
    smoothed = smooth(raw, cfg.smoothing_window)

    logger.debug(
        "Motion analysis: %d frames (%d detected, %d carried forward, %d manual)",
        len(merged),
        merged.detected_count,
        merged.carried_forward_count,
        merged.manual_count,
    )
    return MotionAnalysis(
        sequence=merged,
        raw=raw,
        smoothed=smoothed,
        status=tracker.status,
    )
