# sim/comm/queues.py
# Ingress/egress buffers shared between the tick thread and the transport threads.
# Each queue owns its lock; callers never hold two of them at once.
import threading
from collections import deque
from typing import Iterable, List, NamedTuple


class Command(NamedTuple):
    code: int          # single wire byte (prefix, opcode or operand)
    timestamp: float   # arrival time, seconds


class CommandQueue:
    """
    Ordered (byte, arrival time) buffer fed by the transport.
    Order is arrival order and is never changed.
    """
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: deque = deque()

    def push(self, code: int, timestamp: float) -> None:
        with self._lock:
            self._items.append(Command(code & 0xFF, float(timestamp)))

    def push_bytes(self, data: Iterable[int], timestamp: float) -> None:
        with self._lock:
            for b in data:
                self._items.append(Command(b & 0xFF, float(timestamp)))

    def peek(self, n: int) -> List[Command]:
        """Copy of the first n commands (fewer if the queue is shorter)."""
        with self._lock:
            count = min(n, len(self._items))
            return [self._items[i] for i in range(count)]

    def pop(self, n: int = 1) -> None:
        with self._lock:
            for _ in range(min(n, len(self._items))):
                self._items.popleft()

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class TelemetryEmitter:
    """Outbound response bytes, drained by the transport."""
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buf = bytearray()

    def emit(self, data: bytes) -> None:
        with self._lock:
            self._buf.extend(data)

    def drain_all(self) -> bytes:
        with self._lock:
            out = bytes(self._buf)
            self._buf.clear()
            return out

    def __len__(self) -> int:
        with self._lock:
            return len(self._buf)
