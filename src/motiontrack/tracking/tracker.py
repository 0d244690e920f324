import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

from .detector import RoiDetector, search_window, select_candidate
from .sequence import TrackedSequence
from .types import (
    BoundingBox,
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

logger = logging.getLogger(__name__)

FORWARD = "forward"
BACKWARD = "backward"

ProgressListener = Callable[[str, int, int], None]


class RoiPropagationTracker:
    """
    Extend one user-drawn box into a per-frame box sequence.

    Two passes start from the anchor frame: forward to the last frame, then
    backward to frame 0. Each step searches a padded window around the
    previous box, so steps within a pass are strictly sequential. A step that
    finds nothing carries the previous box forward with zero confidence; the
    search window never grows over consecutive misses.
    """

    def __init__(
        self,
        detector: RoiDetector,
        cfg: TrackerConfig | None = None,
        on_progress: ProgressListener | None = None,
    ):
        self._detector = detector
        self._cfg: TrackerConfig = cfg or TrackerConfig()
        self._cfg.validate()
        self._on_progress = on_progress
        self._cancel_event = threading.Event()
        self._status_lock = threading.Lock()
        self._status = TrackingStatus()

    @property
    def config(self) -> TrackerConfig:
        return self._cfg

    @property
    def status(self) -> TrackingStatus:
        """Progress and detector failures of the current or last run."""
        return self._status

    def cancel(self) -> None:
        """Abandon remaining steps; checked between steps, safe from any thread."""
        self._cancel_event.set()

    def track(
        self,
        frames: Sequence[Image],
        anchor: int,
        initial: BoundingBox,
    ) -> TrackedSequence:
        num_frames = len(frames)
        if not 0 <= anchor < num_frames:
            raise TrackingError(
                f"Anchor frame {anchor} out of range for {num_frames} frames"
            )
        if not initial.is_valid:
            raise TrackingError("Initial box must have positive width and height")

        self._cancel_event.clear()
        self._status = TrackingStatus(
            forward=TrackingProgress(total=num_frames),
            backward=TrackingProgress(total=num_frames),
            running=True,
        )
        forward_indices = range(anchor, num_frames)
        backward_indices = range(anchor - 1, -1, -1)

        try:
            if self._cfg.parallel_passes:
                with ThreadPoolExecutor(
                    max_workers=2, thread_name_prefix="roi-pass"
                ) as pool:
                    fwd = pool.submit(
                        self._run_pass, frames, forward_indices, initial, FORWARD
                    )
                    bwd = pool.submit(
                        self._run_pass, frames, backward_indices, initial, BACKWARD
                    )
                    forward, backward = fwd.result(), bwd.result()
            else:
                forward = self._run_pass(frames, forward_indices, initial, FORWARD)
                backward = self._run_pass(frames, backward_indices, initial, BACKWARD)
        finally:
            self._status.running = False
            self._status.cancelled = self._cancel_event.is_set()

        result = forward.merged(backward)
        if self._cfg.preserve_anchor:
            result.set(anchor, TrackedBox.manual(initial))

        logger.debug(
            "Tracked %d/%d frames from anchor %d: %d detected, %d carried forward, "
            "%d detector failures%s",
            len(result),
            num_frames,
            anchor,
            result.detected_count,
            result.carried_forward_count,
            len(self._status.failures),
            " (cancelled)" if self._status.cancelled else "",
        )
        return result

    def _run_pass(
        self,
        frames: Sequence[Image],
        indices: range,
        initial: BoundingBox,
        pass_name: str,
    ) -> TrackedSequence:
        out = TrackedSequence()
        current = initial
        num_frames = len(frames)
        progress = (
            self._status.forward if pass_name == FORWARD else self._status.backward
        )
        for i in indices:
            if self._cancel_event.is_set():
                logger.debug("%s pass cancelled before frame %d", pass_name, i)
                break
            tracked = self._step(frames[i], current, i, pass_name)
            out.set(i, tracked)
            current = tracked.box

            progress.completed = i + 1 if pass_name == FORWARD else num_frames - i
            if self._on_progress is not None:
                self._on_progress(pass_name, progress.completed, num_frames)
        return out

    def _step(
        self,
        frame: Image,
        hint: BoundingBox,
        frame_index: int,
        pass_name: str,
    ) -> TrackedBox:
        height_px, width_px = frame.shape[:2]
        x0, y0, x1, y1 = search_window(hint, width_px, height_px, self._cfg.padding_px)
        if x1 <= x0 or y1 <= y0:
            logger.debug("Frame %d: search window outside image", frame_index)
            return TrackedBox.carried_forward(hint)

        region = frame[y0:y1, x0:x1]
        local_hint = hint.translated(-x0, -y0)
        try:
            candidates = self._detector.detect(region, local_hint)
        except DetectionError as exc:
            # Operational failures degrade to a soft miss for this frame only.
            logger.warning(
                "Detector failed on frame %d (%s pass): %s", frame_index, pass_name, exc
            )
            with self._status_lock:
                self._status.failures.append(
                    DetectorFailure(frame_index, pass_name, str(exc))
                )
            candidates = []

        best = select_candidate(
            candidates,
            local_hint,
            acceptance_threshold=self._cfg.acceptance_threshold,
            distance_scale_px=self._cfg.distance_scale_px,
        )
        if best is None:
            return TrackedBox.carried_forward(hint)
        return TrackedBox(
            box=best.box.translated(x0, y0),
            confidence=best.confidence,
            status=DetectionStatus.DETECTED,
        )
