# Differential-drive forward kinematics for the simulated robot.
# Pure functions: time is always passed in, nothing here reads a clock.
import math
from dataclasses import dataclass
from typing import NamedTuple, Tuple

from motor_state import normalize_angle, to_signed_byte

STRAIGHT_EPS = 1e-5   # mm/s


@dataclass(frozen=True)
class RobotParams:
    radius: float = 250.0               # mm, half the wheel base
    wheel_diameter: float = 125.0       # mm
    counts_per_turn: int = 980          # encoder counts per wheel turn
    speed_to_mmps: float = 6.25         # empirical, mm/s per speed unit
    motor_timeout_s: float = 2.0

    @property
    def mm_per_count(self) -> float:
        return self.wheel_diameter * math.pi / self.counts_per_turn


DEFAULT_PARAMS = RobotParams()


class StepResult(NamedTuple):
    x: float
    y: float
    angle: float        # degrees, normalized
    left_mm: float      # distance travelled by wheel 1
    right_mm: float     # distance travelled by wheel 2


def wheel_units(mode: int, speed1: int, speed2: int) -> Tuple[int, int]:
    """Decode the speed registers into signed wheel units (-128..127) for a mode."""
    if mode == 0:
        return speed1 - 128, speed2 - 128
    if mode == 1:
        return to_signed_byte(speed1), to_signed_byte(speed2)
    if mode == 2:
        if speed1 >= 128:    # forward
            left = min(speed1 + speed2 - 256, 127)
            right = min(speed1 - speed2, 127)
        else:
            left = max(speed1 - speed2, -128)
            right = max(speed1 + speed2 - 256, -128)
        return left, right
    if mode == 3:
        s1 = to_signed_byte(speed1)
        s2 = to_signed_byte(speed2)
        if s1 >= 0:          # forward
            left = min(s1 + s2, 127)
            right = min(s1 - s2, 127)
        else:
            left = max(s1 - s2, -128)
            right = max(s1 + s2, -128)
        return left, right
    raise ValueError(f"unknown speed mode {mode}")


def wheel_speeds(mode: int, speed1: int, speed2: int,
                 params: RobotParams = DEFAULT_PARAMS) -> Tuple[float, float]:
    """Left/right wheel speeds in mm/s."""
    left, right = wheel_units(mode, speed1, speed2)
    return left * params.speed_to_mmps, right * params.speed_to_mmps


def integrate(x: float, y: float, angle: float, left: float, right: float,
              dt: float, radius: float = DEFAULT_PARAMS.radius) -> Tuple[float, float, float]:
    """
    Move the robot for dt seconds with constant wheel speeds (mm/s).

    Equal speeds give a straight line; otherwise the pose is rotated exactly
    about the instantaneous center of curvature.
    """
    if dt == 0:
        return x, y, normalize_angle(angle)

    theta = math.radians(angle)
    if abs(left - right) < STRAIGHT_EPS:
        return (x + left * math.cos(theta) * dt,
                y + left * math.sin(theta) * dt,
                normalize_angle(angle))

    wheel_base = 2 * radius
    r = wheel_base / 2 * (left + right) / (right - left)
    w = (right - left) / wheel_base

    icc_x = x - r * math.sin(theta)
    icc_y = y + r * math.cos(theta)

    wt = w * dt
    cos_wt, sin_wt = math.cos(wt), math.sin(wt)
    new_x = cos_wt * (x - icc_x) - sin_wt * (y - icc_y) + icc_x
    new_y = sin_wt * (x - icc_x) + cos_wt * (y - icc_y) + icc_y
    new_angle = normalize_angle(angle + wt * 180 / math.pi)
    return new_x, new_y, new_angle


def step(mode: int, speed1: int, speed2: int, start: float, end: float,
         sim_speed: float, x: float, y: float, angle: float,
         params: RobotParams = DEFAULT_PARAMS) -> StepResult:
    dt = (end - start) * sim_speed
    left, right = wheel_speeds(mode, speed1, speed2, params)
    new_x, new_y, new_angle = integrate(x, y, angle, left, right, dt, params.radius)
    return StepResult(new_x, new_y, new_angle, left * dt, right * dt)


def encoder_counts(distance_mm: float, params: RobotParams = DEFAULT_PARAMS) -> int:
    # int() truncates toward zero
    return int(distance_mm / params.mm_per_count)
