"""Pure ring layout and pointer hit-testing helpers (no Qt types)."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

Point = Tuple[float, float]

CENTER_RADIUS = 24.0


@dataclass(frozen=True)
class RingMetrics:
    ring_distance: float
    item_radius: float
    deadzone: float

    @property
    def inner_band_radius(self) -> float:
        return max(0.0, self.ring_distance - self.item_radius)


ROOT_METRICS = RingMetrics(ring_distance=120.0, item_radius=43.0, deadzone=25.0)
NESTED_METRICS = RingMetrics(ring_distance=108.0, item_radius=44.0, deadzone=30.0)


def metrics_for_depth(depth: int) -> RingMetrics:
    return ROOT_METRICS if depth <= 0 else NESTED_METRICS


def dist2(ax: float, ay: float, bx: float, by: float) -> float:
    dx = ax - bx
    dy = ay - by
    return dx * dx + dy * dy


def ring_layout(n: int, cx: float, cy: float, dist: float) -> List[Point]:
    """Place ``n`` points evenly on a circle, entry 0 straight up, then clockwise.

    Screen coordinates grow downwards, so increasing angles from -pi/2 run
    clockwise on screen.
    """
    if n <= 0:
        return []
    step = math.tau / n
    points: List[Point] = []
    for i in range(n):
        angle = -math.pi / 2 + i * step
        if i == 0:
            # cos(-pi/2) is not exactly zero in floating point.
            points.append((cx, cy - dist))
            continue
        points.append((cx + dist * math.cos(angle), cy + dist * math.sin(angle)))
    return points


def closest_index_for_pointer(
    px: float,
    py: float,
    cx: float,
    cy: float,
    points: Sequence[Point],
    deadzone: float,
) -> Optional[int]:
    """Return the index of the point nearest the pointer, or None inside the dead-zone.

    Ties go to the lower index.
    """
    if dist2(px, py, cx, cy) < deadzone * deadzone:
        return None
    best: Optional[int] = None
    best_d2 = 0.0
    for i, (x, y) in enumerate(points):
        d2 = dist2(px, py, x, y)
        if best is None or d2 < best_d2:
            best = i
            best_d2 = d2
    return best


def in_center_control(px: float, py: float, cx: float, cy: float, radius: float = CENTER_RADIUS) -> bool:
    return dist2(px, py, cx, cy) <= radius * radius


def in_inner_band(px: float, py: float, cx: float, cy: float, metrics: RingMetrics) -> bool:
    inner = metrics.inner_band_radius
    return dist2(px, py, cx, cy) <= inner * inner
