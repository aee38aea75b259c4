#  UDP transport for the simulator

# NOTE: each datagram carries raw command bytes (0x00, opcode, operands...)
# NOTE: telemetry goes back to whoever sent the most recent datagram
# NOTE: 1500 bytes for Ethernet MTU

MTU_BYTES = 1500   # recv buffer

import logging
import socket

logger = logging.getLogger(__name__)


class UdpLink:
    """
    Controller <-> simulator UDP link
    """
    def __init__(self, sim, host="0.0.0.0", port=5005):
        self.sim = sim

        # NOTE: datagram -> not connection-based
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind((host, port))
        self.sock.setblocking(False)

        self.peer = None
        logger.info("udp link listening on %s:%d", *self.address)

    @property
    def address(self):
        return self.sock.getsockname()

    def close(self):
        self.sock.close()

    def pump_ingress(self, now):
        """
        Non-blocking: push every pending datagram into the command queue.
        Returns the number of bytes received.
        """
        total = 0
        while True:
            try:
                data, addr = self.sock.recvfrom(MTU_BYTES)
            except BlockingIOError:
                break
            self.peer = addr
            self.sim.push_bytes(data, now)
            total += len(data)
        return total

    def pump_egress(self):
        if self.peer is None:
            return 0
        out = self.sim.drain_telemetry()
        if out:
            self.sock.sendto(out, self.peer)
        return len(out)
