# Obstacles in the simulated plane. Only queried, never fed back into motion.
import math
from dataclasses import dataclass, field
from typing import List, Tuple


def _distance_to_segment(px: float, py: float, a: Tuple[float, float], b: Tuple[float, float]) -> float:
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    if abs(dx) < 1e-4 and abs(dy) < 1e-4:   # degenerate segment
        return math.hypot(px - a[0], py - a[1])
    t = ((px - a[0]) * dx + (py - a[1]) * dy) / (dx * dx + dy * dy)
    t = max(0.0, min(1.0, t))
    return math.hypot(px - (a[0] + t * dx), py - (a[1] + t * dy))


@dataclass
class Obstacle:
    """Axis-aligned rectangle, (x, y) is the lower-left corner in mm."""
    x: float
    y: float
    width: float
    height: float
    filled: bool = True

    def corners(self) -> List[Tuple[float, float]]:
        return [
            (self.x, self.y),
            (self.x, self.y + self.height),
            (self.x + self.width, self.y + self.height),
            (self.x + self.width, self.y),
        ]

    def intersects(self, cx: float, cy: float, radius: float) -> bool:
        if not self.filled:
            # only the border counts
            c = self.corners()
            return any(_distance_to_segment(cx, cy, c[i], c[(i + 1) % 4]) <= radius for i in range(4))

        half_w = self.width / 2.0
        half_h = self.height / 2.0
        dx = abs(cx - (self.x + half_w))
        dy = abs(cy - (self.y + half_h))

        if dx > radius + half_w or dy > radius + half_h:
            return False
        if dx <= half_w or dy <= half_h:
            return True
        return (dx - half_w) ** 2 + (dy - half_h) ** 2 <= radius ** 2


@dataclass
class Environment:
    width: float = 5000.0    # mm
    height: float = 5000.0   # mm
    obstacles: List[Obstacle] = field(default_factory=list)

    def add_obstacle(self, obstacle: Obstacle) -> None:
        self.obstacles.append(obstacle)

    def collisions(self, cx: float, cy: float, radius: float) -> List[int]:
        return [i for i, o in enumerate(self.obstacles) if o.intersects(cx, cy, radius)]
