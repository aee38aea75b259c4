# sim/simulator.py
# Owns the queues, registers and pose of one simulated robot and runs the tick.
import logging
from typing import Iterable, List, Optional

from comm.queues import CommandQueue, TelemetryEmitter
from decoder import ProtocolDecoder
from environment import Environment
from kinematics import RobotParams
from motor_state import MotorState, Pose

logger = logging.getLogger(__name__)


class Simulator:
    """
    Transport threads call ``push_bytes`` / ``drain_telemetry``; the tick
    thread calls ``tick(now)``. Pose and registers are read-only outside the tick.
    """
    def __init__(
        self,
        params: Optional[RobotParams] = None,
        sim_speed: float = 1.0,
        timeout_enabled: bool = True,
        start_time: float = 0.0,
        environment: Optional[Environment] = None,
    ):
        self.params = params or RobotParams()
        self.commands = CommandQueue()
        self.telemetry = TelemetryEmitter()
        self.state = MotorState(timeout_enabled=timeout_enabled, start_time=start_time)
        self.pose = Pose()
        self.environment = environment or Environment()
        self.decoder = ProtocolDecoder(
            self.commands, self.telemetry, self.state, self.pose,
            params=self.params, sim_speed=sim_speed, start_time=start_time,
        )
        self.running = False

    def start(self, now: float) -> None:
        # time spent stopped is not integrated
        self.decoder.last_step_time = max(now, self.decoder.last_step_time)
        self.running = True
        logger.info("simulation started at t=%.3f", now)

    def stop(self) -> None:
        self.running = False
        logger.info("simulation stopped")

    def push_bytes(self, data: Iterable[int], arrival_time: float) -> None:
        self.commands.push_bytes(data, arrival_time)

    def drain_telemetry(self) -> bytes:
        return self.telemetry.drain_all()

    def tick(self, now: float) -> bool:
        if not self.running:
            return False
        self.decoder.run(now)
        return True

    @property
    def sim_speed(self) -> float:
        return self.decoder.sim_speed

    def collisions(self) -> List[int]:
        """Indices of obstacles overlapping the robot footprint."""
        return self.environment.collisions(self.pose.x, self.pose.y, self.params.radius)
