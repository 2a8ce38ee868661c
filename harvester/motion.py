"""Human-plausible pointer paths, scroll plans and dwell delays."""

import math
import random
from typing import NamedTuple, Optional


class Point(NamedTuple):
    x: float
    y: float


def _distance(a: Point, b: Point) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


def _ease_in_out(t: float) -> float:
    # Slow start, fast middle, slow finish
    return 0.5 - 0.5 * math.cos(math.pi * t)


def _bezier(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    u = 1 - t
    x = u ** 3 * p0.x + 3 * u ** 2 * t * p1.x + 3 * u * t ** 2 * p2.x + t ** 3 * p3.x
    y = u ** 3 * p0.y + 3 * u ** 2 * t * p1.y + 3 * u * t ** 2 * p2.y + t ** 3 * p3.y
    return Point(x, y)


class MotionSynthesizer:
    """Generates pointer curves and timings; the RNG is its only state."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        max_step: float = 25.0,
        min_bend: float = 4.0,
        bend_ratio: float = 0.25,
    ):
        self.rng = rng or random.Random()
        self.max_step = max_step
        self.min_bend = min_bend
        self.bend_ratio = bend_ratio

    def _waypoints(self, start: Point, end: Point) -> tuple[Point, Point]:
        """Two randomized control points pushed off the straight line."""
        dx, dy = end.x - start.x, end.y - start.y
        length = math.hypot(dx, dy)
        if length == 0:
            nx, ny = 0.0, 1.0
        else:
            nx, ny = -dy / length, dx / length
        # Same side for both control points so every interior point leaves the line
        side = self.rng.choice((-1, 1))
        controls = []
        for frac in (self.rng.uniform(0.2, 0.4), self.rng.uniform(0.6, 0.8)):
            bend = side * max(self.min_bend, length * self.rng.uniform(0.05, self.bend_ratio))
            controls.append(Point(start.x + dx * frac + nx * bend, start.y + dy * frac + ny * bend))
        return controls[0], controls[1]

    def curve(self, start, end, steps: int = 25) -> list[Point]:
        """Points from ``start`` to ``end`` (both included) along a bent path.

        Parameter spacing follows an ease-in-out profile with jitter, so
        velocity is never uniform. Segments longer than ``max_step`` are
        subdivided.
        """
        start, end = Point(*start), Point(*end)
        steps = max(int(steps), 2)
        c1, c2 = self._waypoints(start, end)

        ts = [0.0]
        for i in range(1, steps):
            jitter = self.rng.uniform(-0.35, 0.35) / steps
            ts.append(min(max(_ease_in_out(i / steps) + jitter, ts[-1]), 1.0))
        ts.append(1.0)

        raw = [_bezier(start, c1, c2, end, t) for t in ts]
        raw[0], raw[-1] = start, end

        points = [raw[0]]
        for point in raw[1:]:
            prev = points[-1]
            gap = _distance(prev, point)
            if gap == 0:
                continue
            pieces = math.ceil(gap / self.max_step)
            for k in range(1, pieces):
                f = k / pieces
                points.append(Point(prev.x + (point.x - prev.x) * f, prev.y + (point.y - prev.y) * f))
            points.append(point)
        if points[-1] != end:
            points.append(end)
        return points

    def segment_pauses(self, count: int, total_ms: Optional[float] = None) -> list[float]:
        """Pause before each of ``count`` pointer moves, in milliseconds."""
        if count <= 0:
            return []
        total_ms = total_ms if total_ms is not None else self.rng.uniform(400, 900)
        weights = [self.rng.uniform(0.5, 1.5) for _ in range(count)]
        scale = total_ms / sum(weights)
        return [w * scale for w in weights]

    def idle(self, min_ms: float, max_ms: float) -> float:
        """Uniform dwell time in ``[min_ms, max_ms]`` milliseconds."""
        if max_ms < min_ms:
            min_ms, max_ms = max_ms, min_ms
        return self.rng.uniform(min_ms, max_ms)

    def scroll_plan(self) -> list[int]:
        """Vertical scroll increments: mostly down, sometimes a short way back up."""
        plan = []
        for _ in range(self.rng.randint(2, 5)):
            plan.append(self.rng.randint(400, 1200))
            if self.rng.random() < 0.2:
                plan.append(-self.rng.randint(100, 300))
        return plan

    def wander_target(self, origin, spread: float = 200.0) -> Point:
        origin = Point(*origin)
        return Point(
            origin.x + (self.rng.random() - 0.5) * spread,
            origin.y + (self.rng.random() - 0.5) * spread,
        )

    def start_point(self, width: float = 600.0, height: float = 600.0) -> Point:
        return Point(self.rng.uniform(100, width), self.rng.uniform(100, height))
