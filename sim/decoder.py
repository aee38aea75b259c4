# sim/decoder.py
# Command-stream interpreter: drains the ingress queue against the tick time,
# integrating the robot motion between commands.
import logging
import struct
from typing import Callable, Dict, List, NamedTuple, Optional

import kinematics
from comm import msg_types as mt
from comm.queues import CommandQueue, TelemetryEmitter
from kinematics import DEFAULT_PARAMS, RobotParams
from motor_state import MODES, MotorState, Pose

logger = logging.getLogger(__name__)


class Opcode(NamedTuple):
    arity: int
    handler: Callable[["ProtocolDecoder", List[int]], None]


def _be16(ops: List[int]) -> int:
    return (ops[0] << 8) | ops[1]


def _emit_const(value: int):
    def handler(dec: "ProtocolDecoder", ops: List[int]) -> None:
        dec.telemetry.emit(bytes([value]))
    return handler


def _get_encoder1(dec, ops):
    dec.telemetry.emit(struct.pack(">i", dec.state.encoder1))


def _get_encoder2(dec, ops):
    dec.telemetry.emit(struct.pack(">i", dec.state.encoder2))


def _get_encoders(dec, ops):
    dec.telemetry.emit(struct.pack(">ii", dec.state.encoder1, dec.state.encoder2))


def _touch_watchdog(dec):
    dec.state.last_command_time = max(dec.command_time, dec.state.last_command_time)


def _set_speed1(dec, ops):
    dec.state.speed1 = ops[0]
    _touch_watchdog(dec)


def _set_speed2(dec, ops):
    dec.state.speed2 = ops[0]
    _touch_watchdog(dec)


def _set_mode(dec, ops):
    if ops[0] not in MODES:
        logger.warning("ignoring invalid mode %d", ops[0])
        return
    dec.state.mode = ops[0]


def _set_regulator(enabled: bool):
    def handler(dec, ops):
        dec.state.regulator_enabled = enabled
    return handler


def _set_timeout(enabled: bool):
    def handler(dec, ops):
        dec.state.timeout_enabled = enabled
    return handler


def _get_sim_speed(dec, ops):
    value = max(0, min(0xFFFF, int(round(dec.sim_speed * 10))))
    dec.telemetry.emit(struct.pack(">H", value))


def _set_sim_speed(dec, ops):
    dec.sim_speed = _be16(ops) / 10.0
    logger.info("simulation speed set to %.1fx", dec.sim_speed)


OPCODES: Dict[int, Opcode] = {
    mt.GET_SPEED1:        Opcode(0, lambda dec, ops: dec.telemetry.emit(bytes([dec.state.speed1]))),
    mt.GET_SPEED2:        Opcode(0, lambda dec, ops: dec.telemetry.emit(bytes([dec.state.speed2]))),
    mt.GET_ENCODER1:      Opcode(0, _get_encoder1),
    mt.GET_ENCODER2:      Opcode(0, _get_encoder2),
    mt.GET_ENCODERS:      Opcode(0, _get_encoders),
    mt.GET_VOLTS:         Opcode(0, _emit_const(mt.VOLTS)),
    mt.GET_CURRENT1:      Opcode(0, _emit_const(mt.CURRENT1)),
    mt.GET_CURRENT2:      Opcode(0, _emit_const(mt.CURRENT2)),
    mt.GET_VERSION:       Opcode(0, _emit_const(mt.VERSION)),
    mt.GET_ACCEL:         Opcode(0, lambda dec, ops: dec.telemetry.emit(bytes([dec.state.acceleration]))),
    mt.GET_MODE:          Opcode(0, lambda dec, ops: dec.telemetry.emit(bytes([dec.state.mode]))),
    mt.GET_VI:            Opcode(0, lambda dec, ops: dec.telemetry.emit(bytes([mt.VOLTS, mt.CURRENT1, mt.CURRENT2]))),
    mt.GET_ERROR:         Opcode(0, _emit_const(mt.ERROR)),
    mt.SET_SPEED1:        Opcode(1, _set_speed1),
    mt.SET_SPEED2:        Opcode(1, _set_speed2),
    mt.SET_ACCEL:         Opcode(1, lambda dec, ops: dec.state.set_acceleration(ops[0])),
    mt.SET_MODE:          Opcode(1, _set_mode),
    mt.RESET_ENCODERS:    Opcode(0, lambda dec, ops: dec.state.reset_encoders()),
    mt.DISABLE_REGULATOR: Opcode(0, _set_regulator(False)),
    mt.ENABLE_REGULATOR:  Opcode(0, _set_regulator(True)),
    mt.DISABLE_TIMEOUT:   Opcode(0, _set_timeout(False)),
    mt.ENABLE_TIMEOUT:    Opcode(0, _set_timeout(True)),
    mt.SET_X:             Opcode(2, lambda dec, ops: dec.pose.teleport(x=_be16(ops))),
    mt.SET_Y:             Opcode(2, lambda dec, ops: dec.pose.teleport(y=_be16(ops))),
    mt.SET_ANGLE:         Opcode(2, lambda dec, ops: dec.pose.teleport(angle=_be16(ops) / 10.0)),
    mt.SET_SIM_SPEED:     Opcode(2, _set_sim_speed),
    mt.GET_SIM_SPEED:     Opcode(0, _get_sim_speed),
}


class ProtocolDecoder:
    """
    Consumes the command queue up to a given time.

    A command is executed only once all of its bytes have arrived by the
    current tick time. Before a command is applied, the robot is moved from
    the previous step time to the arrival time of the command's last byte
    under the old register values.
    """
    def __init__(
        self,
        commands: CommandQueue,
        telemetry: TelemetryEmitter,
        state: Optional[MotorState] = None,
        pose: Optional[Pose] = None,
        params: RobotParams = DEFAULT_PARAMS,
        sim_speed: float = 1.0,
        start_time: float = 0.0,
    ):
        self.commands = commands
        self.telemetry = telemetry
        self.state = state if state is not None else MotorState(start_time=start_time)
        self.pose = pose if pose is not None else Pose()
        self.params = params
        self.sim_speed = float(sim_speed)
        self.last_step_time = float(start_time)
        self.command_time = float(start_time)   # arrival time of the command being applied

    def try_decode_one(self, now: float) -> bool:
        head = self.commands.peek(2)
        if not head or head[0].timestamp > now:
            return False

        if head[0].code != mt.PREFIX:
            logger.debug("dropping stray byte 0x%02X", head[0].code)
            self.commands.pop(1)
            return True

        if len(head) < 2 or head[1].timestamp > now:
            return False

        opcode = OPCODES.get(head[1].code)
        if opcode is None:
            logger.debug("dropping prefix before unknown opcode 0x%02X", head[1].code)
            self.commands.pop(1)
            return True

        size = 2 + opcode.arity
        cmd = self.commands.peek(size)
        if len(cmd) < size or cmd[-1].timestamp > now:
            return False

        stamp = cmd[-1].timestamp
        self.advance(stamp)
        self.command_time = stamp
        opcode.handler(self, [c.code for c in cmd[2:]])
        self.commands.pop(size)
        return True

    def run(self, now: float) -> None:
        while self.try_decode_one(now):
            pass
        self.advance(now)

    def advance(self, end: float) -> None:
        """Integrate motion from the last step time up to ``end``."""
        start = self.last_step_time
        # late-stamped bytes never move time backwards
        end = max(end, start)

        state = self.state
        if state.timeout_enabled and (start - state.last_command_time) > self.params.motor_timeout_s:
            if not state.timed_out:
                logger.info("motor timeout: no command for %.2fs, stopping",
                            start - state.last_command_time)
            state.force_stop()

        res = kinematics.step(state.decode_mode, state.speed1, state.speed2,
                              start, end, self.sim_speed,
                              self.pose.x, self.pose.y, self.pose.angle, self.params)
        self.pose.move_to(res.x, res.y, res.angle)
        state.add_encoder_counts(kinematics.encoder_counts(res.left_mm, self.params),
                                 kinematics.encoder_counts(res.right_mm, self.params))
        self.last_step_time = end
