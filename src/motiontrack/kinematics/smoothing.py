import dataclasses
import logging
from collections.abc import Sequence

import numpy as np

from .types import SMOOTHED_FIELDS, KinematicsError, MotionSample

logger = logging.getLogger(__name__)


def smooth(samples: Sequence[MotionSample], window: int = 3) -> list[MotionSample]:
    """
    Centered moving average over every numeric field except frame and time.

    The window shrinks at both ends instead of padding or wrapping. Sequences
    shorter than `window` are returned unchanged.
    """
    if window < 1:
        raise KinematicsError("Smoothing window must be at least 1")
    n = len(samples)
    if n < window:
        logger.debug("Skip smoothing: %d samples < window %d", n, window)
        return list(samples)

    values = np.array(
        [[getattr(s, name) for name in SMOOTHED_FIELDS] for s in samples],
        dtype=float,
    )
    half = window // 2
    out: list[MotionSample] = []
    for i, sample in enumerate(samples):
        start = max(0, i - half)
        end = min(n, i + half + 1)
        means = values[start:end].mean(axis=0)
        out.append(
            dataclasses.replace(
                sample,
                **{name: float(v) for name, v in zip(SMOOTHED_FIELDS, means)},
            )
        )
    return out
