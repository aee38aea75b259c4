# sim/comm/serial_proto.py
# Controller-side helpers: build command bytes and split response bytes.
import struct
from typing import List, NamedTuple, Optional, Tuple

from .msg_types import (PREFIX, RESPONSE_LEN, SET_SPEED1, SET_SPEED2, SET_MODE, SET_ACCEL,
                        SET_X, SET_Y, SET_ANGLE, SET_SIM_SPEED, GET_ENCODER1, GET_ENCODER2,
                        GET_ENCODERS, GET_ERROR, GET_SIM_SPEED)


def _byte(value: int, name: str) -> int:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} out of range 0..255: {value}")
    return value


def _u16(value: int, name: str) -> bytes:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"{name} out of range 0..65535: {value}")
    return struct.pack(">H", value)


def encode_command(opcode: int, operands: bytes = b"") -> bytes:
    return bytes([PREFIX, _byte(opcode, "opcode")]) + bytes(operands)


def set_speeds(speed1: int, speed2: int) -> bytes:
    return (encode_command(SET_SPEED1, bytes([_byte(speed1, "speed1")]))
            + encode_command(SET_SPEED2, bytes([_byte(speed2, "speed2")])))


def set_mode(mode: int) -> bytes:
    if mode not in (0, 1, 2, 3):
        raise ValueError(f"mode must be 0..3: {mode}")
    return encode_command(SET_MODE, bytes([mode]))


def set_acceleration(accel: int) -> bytes:
    if not 1 <= accel <= 10:
        raise ValueError(f"acceleration must be 1..10: {accel}")
    return encode_command(SET_ACCEL, bytes([accel]))


def teleport_x(x_mm: int) -> bytes:
    return encode_command(SET_X, _u16(x_mm, "x"))


def teleport_y(y_mm: int) -> bytes:
    return encode_command(SET_Y, _u16(y_mm, "y"))


def teleport_angle(angle_deg: float) -> bytes:
    return encode_command(SET_ANGLE, _u16(int(round(angle_deg * 10)), "angle"))


def set_sim_speed(multiplier: float) -> bytes:
    return encode_command(SET_SIM_SPEED, _u16(int(round(multiplier * 10)), "sim speed"))


class ErrorFlags(NamedTuple):
    """Driver error bitmask (GET_ERROR reply), one field per bit."""
    motor1_trip: bool = False     # bit 2
    motor2_trip: bool = False     # bit 3
    motor1_short: bool = False    # bit 4
    motor2_short: bool = False    # bit 5
    volts_over_30: bool = False   # bit 6
    volts_under_16: bool = False  # bit 7

    @property
    def healthy(self) -> bool:
        return not any(self)


def decode_error(value: int) -> ErrorFlags:
    return ErrorFlags(*(bool(value & (1 << bit)) for bit in range(2, 8)))


def parse_response(opcode: int, payload: bytes):
    """Turn a raw response into a value (tuple for multi-value replies)."""
    if opcode in (GET_ENCODER1, GET_ENCODER2):
        (value,) = struct.unpack(">i", payload)
        return value
    if opcode == GET_ENCODERS:
        return struct.unpack(">ii", payload)
    if opcode == GET_SIM_SPEED:
        (value,) = struct.unpack(">H", payload)
        return value / 10.0
    if opcode == GET_ERROR:
        return decode_error(payload[0])
    if len(payload) == 1:
        return payload[0]
    return tuple(payload)


class ResponseDecoder:
    """
    Matches incoming response bytes to the queries that were sent.
    Queries are answered in order, so responses are split by the expected
    length of each pending query.
    """
    def __init__(self) -> None:
        self.buf = bytearray()
        self.pending: List[int] = []

    def reset(self):
        self.buf.clear()
        self.pending.clear()

    def expect(self, opcode: int) -> None:
        if opcode not in RESPONSE_LEN:
            raise ValueError(f"opcode 0x{opcode:02X} has no response")
        self.pending.append(opcode)

    def push(self, chunk: bytes):
        self.buf.extend(chunk)

    def pop_response(self) -> Optional[Tuple[int, object]]:
        if not self.pending:
            return None
        opcode = self.pending[0]
        size = RESPONSE_LEN[opcode]
        if len(self.buf) < size:
            return None
        payload = bytes(self.buf[:size])
        del self.buf[:size]
        self.pending.pop(0)
        return (opcode, parse_response(opcode, payload))
