# sim/controller.py
# Client-side motion helpers: turn distances, angles and durations into
# timestamped command sequences for anything with push_bytes(data, t),
# e.g. a Simulator or a link's write side.
import logging
import math
from typing import List, Tuple

from comm import serial_proto as sp
from comm.serial_proto import ErrorFlags, ResponseDecoder
from kinematics import DEFAULT_PARAMS, RobotParams

logger = logging.getLogger(__name__)

STOP = 128   # mode-0 centre

HEALTH_MESSAGES = (
    ("volts_over_30",  "Voltage is over 30 Volts!"),
    ("volts_under_16", "Voltage is under 16 Volts!"),
    ("motor1_trip",    "Motor 1 tripped!"),
    ("motor2_trip",    "Motor 2 tripped!"),
    ("motor1_short",   "Motor 1 is short-circuited!"),
    ("motor2_short",   "Motor 2 is short-circuited!"),
)


def _wheel(value: int, name: str) -> int:
    if not -128 <= value <= 127:
        raise ValueError(f"{name} out of range -128..127: {value}")
    return value


def _non_negative(value: float, name: str) -> float:
    if value < 0:
        raise ValueError(f"{name} must be >= 0: {value}")
    return float(value)


class RobotController:
    """
    Schedules mode-0 speed commands on a time cursor ``t`` (seconds).

    Every move starts at ``t`` and advances it by the move's duration, so
    calls chain into a timeline. While a speed is held the command is
    re-sent every ``keepalive_s`` so the driver's motor timeout never fires
    in the middle of a move. Wheel speeds are signed units (-128..127).
    """
    def __init__(self, sink, params: RobotParams = DEFAULT_PARAMS,
                 start_time: float = 0.0, keepalive_s: float = 1.0):
        if keepalive_s <= 0:
            raise ValueError(f"keepalive_s must be > 0: {keepalive_s}")
        self.sink = sink
        self.params = params
        self.t = float(start_time)
        self.keepalive_s = keepalive_s
        self.responses = ResponseDecoder()

    def send(self, data: bytes) -> None:
        self.sink.push_bytes(data, self.t)

    def _hold(self, speed1: int, speed2: int, seconds: float) -> None:
        end = self.t + seconds
        data = sp.set_speeds(speed1, speed2)
        while True:
            self.send(data)
            if self.t + self.keepalive_s >= end:
                break
            self.t += self.keepalive_s
        self.t = end

    # --- timed moves ---
    def set_speed_seconds(self, seconds: float, wheel1: int, wheel2: int) -> None:
        seconds = _non_negative(seconds, "seconds")
        speed1 = _wheel(wheel1, "wheel1") + STOP
        speed2 = _wheel(wheel2, "wheel2") + STOP
        logger.debug("t=%.3f hold %d/%d for %.3fs", self.t, wheel1, wheel2, seconds)
        self.send(sp.set_mode(0))
        self._hold(speed1, speed2, seconds)

    def set_speed_mm(self, distance_mm: float, wheel1: int, wheel2: int) -> None:
        """Hold the speeds until the robot centre has covered ``distance_mm``."""
        distance_mm = _non_negative(distance_mm, "distance_mm")
        centre = abs(_wheel(wheel1, "wheel1") + _wheel(wheel2, "wheel2")) / 2 * self.params.speed_to_mmps
        if centre == 0:
            raise ValueError("wheel speeds do not move the robot centre")
        self.set_speed_seconds(distance_mm / centre, wheel1, wheel2)

    def set_speed_degrees(self, degrees: float, wheel1: int, wheel2: int) -> None:
        """Hold the speeds until the heading has turned by ``degrees``."""
        degrees = _non_negative(degrees, "degrees")
        delta_v = (_wheel(wheel1, "wheel1") - _wheel(wheel2, "wheel2")) * self.params.speed_to_mmps
        if delta_v == 0:
            raise ValueError("equal wheel speeds do not turn the robot")
        seconds = abs(2 * self.params.radius * math.radians(degrees) / delta_v)
        self.set_speed_seconds(seconds, wheel1, wheel2)

    def move_forward_mm(self, distance_mm: float, speed: int) -> None:
        self.set_speed_mm(distance_mm, abs(speed), abs(speed))

    def move_backward_mm(self, distance_mm: float, speed: int) -> None:
        self.set_speed_mm(distance_mm, -abs(speed), -abs(speed))

    def move_forward_seconds(self, seconds: float, speed: int) -> None:
        self.set_speed_seconds(seconds, abs(speed), abs(speed))

    def move_backward_seconds(self, seconds: float, speed: int) -> None:
        self.set_speed_seconds(seconds, -abs(speed), -abs(speed))

    def rotate_left_degrees(self, degrees: float, speed: int) -> None:
        self.set_speed_degrees(degrees, -abs(speed), abs(speed))

    def rotate_right_degrees(self, degrees: float, speed: int) -> None:
        self.set_speed_degrees(degrees, abs(speed), -abs(speed))

    def wait(self, seconds: float) -> None:
        self.t += _non_negative(seconds, "seconds")

    def stop(self) -> None:
        self.send(sp.set_mode(0) + sp.set_speeds(STOP, STOP))

    def set_pose(self, x_mm: float, y_mm: float, angle_deg: float) -> None:
        self.send(sp.teleport_x(int(round(x_mm)))
                  + sp.teleport_y(int(round(y_mm)))
                  + sp.teleport_angle(angle_deg % 360))

    # --- queries ---
    def query(self, opcode: int) -> None:
        self.responses.expect(opcode)
        self.send(sp.encode_command(opcode))

    def read_responses(self, data: bytes = b"") -> List[Tuple[int, object]]:
        self.responses.push(data)
        out = []
        while True:
            resp = self.responses.pop_response()
            if resp is None:
                return out
            out.append(resp)

    def reset(self) -> None:
        """Forget unanswered queries and buffered bytes, e.g. after a reconnect."""
        if self.responses.pending:
            logger.info("dropping %d unanswered queries", len(self.responses.pending))
        self.responses.reset()


def check_health(error) -> Tuple[bool, str]:
    """``error`` is the raw GET_ERROR byte or decoded ErrorFlags."""
    flags = error if isinstance(error, ErrorFlags) else sp.decode_error(error)
    problems = [msg for field, msg in HEALTH_MESSAGES if getattr(flags, field)]
    return flags.healthy, " ".join(problems)
