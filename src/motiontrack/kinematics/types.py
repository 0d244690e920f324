from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class MotionSample:
    """Kinematic state at one tracked frame.

    Positions are in meters, velocities in m/s, accelerations in m/s^2.
    `speed` and `acceleration` are Euclidean norms, never signed.
    """

    frame: int
    time: float
    x: float
    y: float
    vx: float
    vy: float
    speed: float
    ax: float
    ay: float
    acceleration: float


# Fields the smoother averages; frame and time are copied as-is.
SMOOTHED_FIELDS: tuple[str, ...] = (
    "x",
    "y",
    "vx",
    "vy",
    "speed",
    "ax",
    "ay",
    "acceleration",
)


@dataclass(slots=True)
class KinematicsConfig:
    fps: float
    pixels_per_meter: float = 100.0

    def validate(self) -> None:
        if self.fps <= 0:
            raise KinematicsError("fps must be positive")
        if self.pixels_per_meter <= 0:
            raise KinematicsError("pixels_per_meter must be positive")


class KinematicsError(RuntimeError):
    pass
