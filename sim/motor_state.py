"""
Register set of the simulated motor driver and the robot pose.

Both objects are written only by the protocol decoder running on the tick
thread; renderers and transports read them.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from comm.msg_types import STOP_SPEED

MODES = (0, 1, 2, 3)
ACCEL_MIN = 1
ACCEL_MAX = 10


def wrap_int32(value: int) -> int:
    """Two's-complement wrap into the signed 32-bit range."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def to_signed_byte(value: int) -> int:
    value &= 0xFF
    return value - 256 if value > 127 else value


def normalize_angle(angle: float) -> float:
    a = angle % 360.0
    # -1e-20 % 360.0 == 360.0
    return 0.0 if a >= 360.0 else a


class MotorState:
    """
    Registers of the motor driver.

    The speed registers are interpreted with the mode that was active when a
    speed register was last written (``decode_mode``). A bare mode change is
    latched by the next speed write or by a watchdog stop.
    """
    def __init__(self, timeout_enabled: bool = True, start_time: float = 0.0) -> None:
        self._speed1 = STOP_SPEED[0]
        self._speed2 = STOP_SPEED[0]
        self._mode = 0
        self._decode_mode = 0
        self.acceleration = 5
        self.encoder1 = 0
        self.encoder2 = 0
        self.regulator_enabled = False
        self.timeout_enabled = timeout_enabled
        self.last_command_time = float(start_time)
        self.timed_out = False

    @property
    def speed1(self) -> int:
        return self._speed1

    @speed1.setter
    def speed1(self, value: int) -> None:
        self._decode_mode = self._mode
        self._speed1 = value & 0xFF
        self.timed_out = False

    @property
    def speed2(self) -> int:
        return self._speed2

    @speed2.setter
    def speed2(self, value: int) -> None:
        self._decode_mode = self._mode
        self._speed2 = value & 0xFF
        self.timed_out = False

    @property
    def mode(self) -> int:
        return self._mode

    @mode.setter
    def mode(self, value: int) -> None:
        if value not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {value}")
        self._decode_mode = self._mode
        self._mode = value

    @property
    def decode_mode(self) -> int:
        return self._decode_mode

    def set_acceleration(self, value: int) -> None:
        self.acceleration = max(ACCEL_MIN, min(ACCEL_MAX, value))

    def force_stop(self) -> None:
        stop = STOP_SPEED[self._mode]
        self.speed1 = stop
        self.speed2 = stop
        self.timed_out = True

    def reset_encoders(self) -> None:
        self.encoder1 = 0
        self.encoder2 = 0

    def add_encoder_counts(self, counts1: int, counts2: int) -> None:
        self.encoder1 = wrap_int32(self.encoder1 + counts1)
        self.encoder2 = wrap_int32(self.encoder2 + counts2)


@dataclass
class Pose:
    x: float = 0.0       # mm
    y: float = 0.0       # mm
    angle: float = 0.0   # degrees, [0, 360)
    trace: List[Tuple[float, float]] = field(default_factory=list)

    def move_to(self, x: float, y: float, angle: float) -> None:
        self.x = x
        self.y = y
        self.angle = normalize_angle(angle)
        point = (x, y)
        if not self.trace or self.trace[-1] != point:
            self.trace.append(point)

    def teleport(self, x: Optional[float] = None, y: Optional[float] = None,
                 angle: Optional[float] = None) -> None:
        if x is not None:
            self.x = float(x)
        if y is not None:
            self.y = float(y)
        if angle is not None:
            self.angle = normalize_angle(angle)
        self.trace.clear()
