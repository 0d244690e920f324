import json
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path

from .types import BoundingBox, DetectionStatus, TrackedBox, TrackingError

logger = logging.getLogger(__name__)


class TrackedSequence:
    """
    Sparse frame_index -> TrackedBox association.

    Keys need not be contiguous or start at 0. Every read accessor walks the
    keys in ascending order regardless of insertion order.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[int, TrackedBox] | None = None):
        self._entries: dict[int, TrackedBox] = {}
        for index, tracked in (entries or {}).items():
            self.set(index, tracked)

    def set(self, frame_index: int, tracked: TrackedBox) -> None:
        if frame_index < 0:
            raise TrackingError(f"Frame index must be non-negative: {frame_index}")
        self._entries[int(frame_index)] = tracked

    def get(self, frame_index: int) -> TrackedBox | None:
        return self._entries.get(frame_index)

    def __getitem__(self, frame_index: int) -> TrackedBox:
        return self._entries[frame_index]

    def __contains__(self, frame_index: object) -> bool:
        return frame_index in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[int]:
        return iter(self.keys())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TrackedSequence):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"TrackedSequence({len(self)} frames)"

    def keys(self) -> list[int]:
        return sorted(self._entries)

    def items(self) -> list[tuple[int, TrackedBox]]:
        return [(k, self._entries[k]) for k in self.keys()]

    def boxes(self) -> list[tuple[int, BoundingBox]]:
        return [(k, tracked.box) for k, tracked in self.items()]

    def count(self, status: DetectionStatus) -> int:
        return sum(1 for t in self._entries.values() if t.status is status)

    @property
    def detected_count(self) -> int:
        return self.count(DetectionStatus.DETECTED)

    @property
    def carried_forward_count(self) -> int:
        return self.count(DetectionStatus.CARRIED_FORWARD)

    @property
    def manual_count(self) -> int:
        return self.count(DetectionStatus.MANUAL)

    def missing(self, num_frames: int) -> list[int]:
        """Frame indices in [0, num_frames) without an entry."""
        return [i for i in range(num_frames) if i not in self._entries]

    def merged(self, other: "TrackedSequence") -> "TrackedSequence":
        """New sequence with entries of `other` replacing ours on shared keys."""
        out = TrackedSequence(self._entries)
        for index, tracked in other.items():
            out.set(index, tracked)
        return out

    def with_overrides(
        self, user_boxes: Mapping[int, BoundingBox]
    ) -> "TrackedSequence":
        """User-drawn boxes take precedence over tracker output at the same index."""
        overrides = TrackedSequence(
            {k: TrackedBox.manual(box) for k, box in user_boxes.items()}
        )
        replaced = sum(1 for k in overrides.keys() if k in self._entries)
        if replaced:
            logger.debug("User boxes override %d tracked frames", replaced)
        return self.merged(overrides)


def save_tracked_sequence(sequence: TrackedSequence, path: str) -> None:
    """Persist a tracked sequence as JSON, preserving detection status."""
    data = {
        "frames": [
            {
                "frame_index": index,
                "x": tracked.box.x,
                "y": tracked.box.y,
                "w": tracked.box.w,
                "h": tracked.box.h,
                "confidence": tracked.confidence,
                "status": tracked.status.value,
            }
            for index, tracked in sequence.items()
        ]
    }
    Path(path).write_text(json.dumps(data, indent=2), encoding="utf-8")


def load_tracked_sequence(path: str) -> TrackedSequence:
    """Load a tracked sequence written by save_tracked_sequence."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    sequence = TrackedSequence()
    for entry in data.get("frames", []):
        try:
            status = DetectionStatus(entry.get("status", "detected"))
        except ValueError as exc:
            raise TrackingError(f"Unknown detection status: {entry['status']}") from exc
        sequence.set(
            int(entry["frame_index"]),
            TrackedBox(
                box=BoundingBox(
                    x=float(entry["x"]),
                    y=float(entry["y"]),
                    w=float(entry["w"]),
                    h=float(entry["h"]),
                ),
                confidence=float(entry["confidence"]),
                status=status,
            ),
        )
    return sequence
