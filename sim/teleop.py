# Keyboard teleoperation
# Keys are turned into the same command bytes a controller would send,
# so the robot is only ever driven through the decoder:
# key -> (mode 0, timeout on, speed1, speed2) -> command queue
# Library API for a front end that owns the keyboard; sim_main runs headless
# and never reads keys itself.
import logging
from typing import Dict, Optional, Tuple

from comm import msg_types as mt
from comm.serial_proto import encode_command, set_mode, set_speeds

logger = logging.getLogger(__name__)

FORWARD  = 148
BACKWARD = 108
STOP     = 128

# action -> (speed1, speed2) in mode 0
ACTIONS: Dict[str, Tuple[int, int]] = {
    "forward":    (FORWARD, FORWARD),
    "backward":   (BACKWARD, BACKWARD),
    "rotate_cw":  (FORWARD, BACKWARD),
    "rotate_ccw": (BACKWARD, FORWARD),
    "stop":       (STOP, STOP),
}


class Teleop:
    def __init__(
        self,
        sim,
        forward: str = "up",
        backward: str = "down",
        rotate_cw: str = "right",
        rotate_ccw: str = "left",
        stop: str = "space",
        global_stop: str = "escape",
        enabled: bool = False,
    ):
        self.sim = sim
        self.keymap = {
            forward:    "forward",
            backward:   "backward",
            rotate_cw:  "rotate_cw",
            rotate_ccw: "rotate_ccw",
            stop:       "stop",
        }
        self.global_stop = global_stop
        self.enabled = enabled

    def toggle(self) -> bool:
        self.enabled = not self.enabled
        return self.enabled

    def command_for(self, action: str) -> bytes:
        speed1, speed2 = ACTIONS[action]
        return set_mode(0) + encode_command(mt.ENABLE_TIMEOUT) + set_speeds(speed1, speed2)

    def handle_key(self, key: str, now: float) -> Optional[str]:
        """Inject the bytes for ``key``; returns the action taken, if any."""
        if key == self.global_stop:
            action = "stop"
        elif not self.enabled:
            return None
        else:
            action = self.keymap.get(key)
            if action is None:
                return None

        self.sim.push_bytes(self.command_for(action), now)
        logger.debug("teleop %s -> %s", key, action)
        return action
