from __future__ import annotations

from collections import deque
from typing import Deque, Dict, List, Tuple

import cv2
import numpy as np

from pedspeed.runtime.interfaces import Renderer
from pedspeed.utils.geometry import arrow_vector
from pedspeed.utils.types import TrackSnapshot


class BEVRenderer(Renderer):
    """
    Top-down view of the ground plane.

    Coordinate frame:
      - +Z (forward from the camera) is up on the canvas
      - +X is right
      - The camera sits near the bottom center of the canvas

    Per track the renderer keeps a short position trail; the trail is the
    visual resource dropped on release().
    """

    def __init__(
        self,
        size: int = 500,
        pixels_per_meter: float = 20.0,
        trail_length: int = 30,
        arrow_horizon_s: float = 0.5,
        min_confidence: float = 0.5,
    ):
        self.size = size
        self.ppm = pixels_per_meter
        self.origin = (size // 2, size - 30)
        self.grid_step_m = 2
        self.trail_length = trail_length
        self.arrow_horizon_s = arrow_horizon_s
        self.min_confidence = min_confidence

        self.trails: Dict[str, Deque[Tuple[float, float]]] = {}
        self.snapshots: List[TrackSnapshot] = []
        self.canvas = np.zeros((size, size, 3), dtype=np.uint8)

    def world_to_bev(self, x_m: float, z_m: float) -> tuple[int, int]:
        """Map ground (x, z) meters into pixel coordinates on the canvas."""
        px = int(self.origin[0] + x_m * self.ppm)
        py = int(self.origin[1] - z_m * self.ppm)
        return px, py

    def update(self, snapshots: List[TrackSnapshot]) -> None:
        self.snapshots = list(snapshots)
        for snap in self.snapshots:
            if snap.world_position is None:
                continue
            trail = self.trails.setdefault(snap.track_id, deque(maxlen=self.trail_length))
            x, _, z = snap.world_position
            if not trail or trail[-1] != (x, z):
                trail.append((x, z))
        self.canvas = self.render()

    def release(self, track_id: str) -> None:
        self.trails.pop(track_id, None)

    def render(self) -> np.ndarray:
        canvas = np.zeros((self.size, self.size, 3), dtype=np.uint8)
        self._draw_grid(canvas)
        self._draw_camera(canvas)
        self._draw_tracks(canvas)
        return canvas

    # ------------------------------------------------------------------ #
    # Draw helpers
    # ------------------------------------------------------------------ #
    def _draw_grid(self, canvas: np.ndarray) -> None:
        """Forward grid every couple of meters with range labels."""
        max_forward_m = int(self.origin[1] / self.ppm)
        for m in range(0, max_forward_m + 1, self.grid_step_m):
            _, y = self.world_to_bev(0.0, m)
            cv2.line(canvas, (0, y), (self.size, y), (50, 50, 50), 1)
            if m > 0:
                cv2.putText(canvas, f"{m}m", (5, max(12, y - 2)), cv2.FONT_HERSHEY_SIMPLEX, 0.4, (200, 200, 200), 1)

    def _draw_camera(self, canvas: np.ndarray) -> None:
        x, y = self.origin
        pts = np.array([(x, y - 12), (x - 8, y + 4), (x + 8, y + 4)], dtype=np.int32)
        cv2.fillPoly(canvas, [pts], (255, 255, 255))

    def _draw_tracks(self, canvas: np.ndarray) -> None:
        for snap in self.snapshots:
            if snap.world_position is None:
                continue
            x_m, _, z_m = snap.world_position
            px, py = self.world_to_bev(x_m, z_m)
            faded = snap.confidence < self.min_confidence
            color = (120, 90, 30) if faded else (255, 200, 0)

            trail = list(self.trails.get(snap.track_id, ()))
            for (ax, az), (bx, bz) in zip(trail, trail[1:]):
                cv2.line(canvas, self.world_to_bev(ax, az), self.world_to_bev(bx, bz), (90, 90, 90), 1)

            cv2.circle(canvas, (px, py), 6, color, -1)

            # Half-second prediction along the smoothed direction.
            arrow = arrow_vector(snap.direction, snap.speed, self.arrow_horizon_s)
            if arrow is not None:
                end = self.world_to_bev(x_m + arrow[0], z_m + arrow[2])
                if end != (px, py):
                    cv2.arrowedLine(canvas, (px, py), end, color, 2, tipLength=0.3)

            cv2.putText(
                canvas,
                f"{snap.track_id[:4]} {snap.speed:.1f}m/s",
                (px + 8, py - 8),
                cv2.FONT_HERSHEY_SIMPLEX,
                0.35,
                (255, 255, 255),
                1,
            )
