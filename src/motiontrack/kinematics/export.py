import dataclasses
import json
from collections.abc import Sequence
from pathlib import Path

from .types import SMOOTHED_FIELDS, KinematicsError, MotionSample


def to_records(
    samples: Sequence[MotionSample],
    decimals: int | None = 3,
) -> list[dict[str, float | int]]:
    """Plain dict rows for charting; numeric fields rounded to `decimals` places."""
    records: list[dict[str, float | int]] = []
    for s in samples:
        row = dataclasses.asdict(s)
        if decimals is not None:
            row["time"] = round(row["time"], decimals)
            for name in SMOOTHED_FIELDS:
                row[name] = round(row[name], decimals)
        records.append(row)
    return records


def save_motion(samples: Sequence[MotionSample], path: str) -> None:
    """Persist motion samples as JSON, full precision."""
    data = {"samples": to_records(samples, decimals=None)}
    Path(path).write_text(json.dumps(data, indent=2), encoding="utf-8")


def load_motion(path: str) -> list[MotionSample]:
    """Load motion samples written by save_motion."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    samples: list[MotionSample] = []
    for row in data.get("samples", []):
        try:
            samples.append(
                MotionSample(
                    frame=int(row["frame"]),
                    time=float(row["time"]),
                    **{name: float(row[name]) for name in SMOOTHED_FIELDS},
                )
            )
        except KeyError as exc:
            raise KinematicsError(f"Motion sample missing field {exc}") from exc
    return samples
