import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import math
import pytest

from comm import msg_types as mt
from comm.serial_proto import ErrorFlags, decode_error
from controller import RobotController, check_health
from kinematics import RobotParams
from simulator import Simulator

MM_PER_COUNT = RobotParams().mm_per_count


def mk():
    sim = Simulator()
    sim.start(0.0)
    return sim, RobotController(sim)


class Recorder:
    def __init__(self):
        self.sent = []

    def push_bytes(self, data, t):
        self.sent.append((t, bytes(data)))


def test_move_forward_mm_through_simulator():
    sim, ctl = mk()
    ctl.move_forward_mm(500, 20)     # 125 mm/s
    assert ctl.t == pytest.approx(4.0)
    ctl.stop()
    sim.tick(6.0)
    assert sim.pose.x == pytest.approx(500.0)
    assert sim.pose.y == pytest.approx(0.0, abs=1e-9)
    assert (sim.state.speed1, sim.state.speed2) == (128, 128)
    assert not sim.state.timed_out
    assert abs(sim.state.encoder1 - int(500.0 / MM_PER_COUNT)) <= 4    # truncated per slice


def test_move_backward_mm():
    sim, ctl = mk()
    ctl.move_backward_mm(250, 20)
    ctl.stop()
    sim.tick(ctl.t + 1.0)
    assert sim.pose.x == pytest.approx(-250.0)


def test_rotate_left_degrees_through_simulator():
    sim, ctl = mk()
    ctl.rotate_left_degrees(90, 20)
    assert ctl.t == pytest.approx(math.pi)
    ctl.stop()
    sim.tick(ctl.t + 1.0)
    assert sim.pose.angle == pytest.approx(90.0)
    assert sim.pose.x == pytest.approx(0.0, abs=1e-6)
    assert sim.pose.y == pytest.approx(0.0, abs=1e-6)


def test_rotate_right_degrees():
    sim, ctl = mk()
    ctl.rotate_right_degrees(45, 10)
    ctl.stop()
    sim.tick(ctl.t + 0.5)
    assert sim.pose.angle == pytest.approx(315.0)


def test_long_hold_keeps_watchdog_fed():
    rec = Recorder()
    ctl = RobotController(rec)
    ctl.move_forward_seconds(3.5, 20)
    times = [t for t, _ in rec.sent]
    assert times == [0.0, 0.0, 1.0, 2.0, 3.0]    # mode, then speeds every second
    assert rec.sent[1][1] == bytes([0, 0x31, 148, 0, 0x32, 148])
    assert ctl.t == 3.5


def test_wait_lets_timeout_stop_the_robot():
    sim, ctl = mk()
    ctl.move_forward_seconds(1.0, 20)
    ctl.wait(3.0)
    for i in range(1, 9):
        sim.tick(i * 0.5)
    assert ctl.t == 4.0
    assert sim.state.timed_out
    assert (sim.state.speed1, sim.state.speed2) == (128, 128)
    assert sim.pose.x == pytest.approx(312.5)


def test_set_pose():
    sim, ctl = mk()
    ctl.move_forward_seconds(1.0, 20)
    ctl.stop()
    ctl.set_pose(1200, 340, -90.0)
    sim.tick(1.5)
    assert (sim.pose.x, sim.pose.y, sim.pose.angle) == (1200.0, 340.0, 270.0)
    assert len(sim.pose.trace) <= 1


def test_queries_are_answered_in_order():
    sim, ctl = mk()
    ctl.query(mt.GET_VERSION)
    ctl.query(mt.GET_ERROR)
    ctl.query(mt.GET_ENCODERS)
    sim.tick(0.0)
    assert ctl.read_responses(sim.drain_telemetry()) == [
        (mt.GET_VERSION, 1),
        (mt.GET_ERROR, ErrorFlags()),
        (mt.GET_ENCODERS, (0, 0)),
    ]


def test_reset_drops_unanswered_queries():
    sim, ctl = mk()
    ctl.query(mt.GET_ENCODERS)
    ctl.read_responses(b"\x00\x00")
    ctl.reset()
    assert ctl.responses.pending == []
    assert len(ctl.responses.buf) == 0
    assert ctl.read_responses(b"\x05") == []


def test_decode_error_bits():
    flags = decode_error(0b11000100)
    assert flags.motor1_trip and flags.volts_over_30 and flags.volts_under_16
    assert not (flags.motor2_trip or flags.motor1_short or flags.motor2_short)
    assert not flags.healthy
    assert decode_error(0).healthy
    assert decode_error(0b11).healthy     # bits 0 and 1 are unused


def test_check_health():
    assert check_health(0) == (True, "")
    ok, text = check_health(0b00101000)
    assert not ok
    assert text == "Motor 2 tripped! Motor 2 is short-circuited!"
    ok, text = check_health(ErrorFlags(volts_over_30=True))
    assert not ok
    assert text == "Voltage is over 30 Volts!"


@pytest.mark.parametrize("call", [
    lambda c: c.set_speed_seconds(-1.0, 10, 10),
    lambda c: c.set_speed_seconds(1.0, 128, 0),
    lambda c: c.move_forward_mm(100, 0),
    lambda c: c.set_speed_degrees(90, 20, 20),
    lambda c: c.wait(-0.5),
])
def test_invalid_arguments_raise(call):
    ctl = RobotController(Recorder())
    with pytest.raises(ValueError):
        call(ctl)
