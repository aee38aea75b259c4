# sim/comm/serial_link.py
import logging
import serial

logger = logging.getLogger(__name__)


class SerialLink:
    """
    Serial port side of the simulator: received bytes become commands,
    telemetry is written back. Accepts pyserial URLs, e.g. "loop://".
    """
    def __init__(self, sim, port: str = "/dev/ttyS0", baud: int = 9600, timeout: float = 0.0):
        self.sim = sim
        self.ser = serial.serial_for_url(port, baudrate=baud, timeout=timeout,
                                         stopbits=serial.STOPBITS_TWO)
        logger.info("serial link open on %s @ %d", port, baud)

    def close(self):
        if self.ser and self.ser.is_open:
            self.ser.close()

    def pump_ingress(self, now: float) -> int:
        waiting = self.ser.in_waiting
        if not waiting:
            return 0
        chunk = self.ser.read(waiting)
        if chunk:
            self.sim.push_bytes(chunk, now)
        return len(chunk)

    def pump_egress(self) -> int:
        out = self.sim.drain_telemetry()
        if out:
            self.ser.write(out)
        return len(out)
