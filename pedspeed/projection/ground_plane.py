from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from pedspeed.runtime.interfaces import GroundPlaneResolver
from pedspeed.utils.types import ProjectionResult


def pixel_to_ray(x: float, y: float, fx: float, fy: float, cx: float, cy: float) -> np.ndarray:
    """Un-normalized viewing ray in the OpenCV camera frame (x right, y down, z forward)."""
    return np.array([(x - cx) / fx, (y - cy) / fy, 1.0], dtype=np.float64)


class FlatGroundResolver(GroundPlaneResolver):
    """
    Ray cast against a horizontal plane for a static pinhole camera.

    World frame: origin on the ground below the camera, x right, y up,
    z forward. The camera sits at (0, camera_height_m, 0) and is pitched
    down by pitch_deg.
    """

    def __init__(
        self,
        image_size: Tuple[int, int],
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        camera_height_m: float = 1.5,
        pitch_deg: float = 10.0,
        max_range_m: float = 50.0,
    ):
        if camera_height_m <= 0:
            raise ValueError(f"camera_height_m must be > 0, got {camera_height_m}")
        if fx <= 0 or fy <= 0:
            raise ValueError("focal lengths must be positive")
        self.width, self.height = image_size
        self.fx, self.fy, self.cx, self.cy = fx, fy, cx, cy
        self.camera_height_m = camera_height_m
        self.max_range_m = max_range_m

        pitch = math.radians(pitch_deg)
        s, c = math.sin(pitch), math.cos(pitch)
        # Columns: camera x, y (down), z (forward) axes expressed in world coordinates.
        self.rotation = np.array(
            [
                [1.0, 0.0, 0.0],
                [0.0, -c, -s],
                [0.0, -s, c],
            ],
            dtype=np.float64,
        )
        self.origin = np.array([0.0, camera_height_m, 0.0], dtype=np.float64)

    @classmethod
    def from_fov(
        cls,
        image_size: Tuple[int, int],
        hfov_deg: float = 70.0,
        camera_height_m: float = 1.5,
        pitch_deg: float = 10.0,
        max_range_m: float = 50.0,
    ) -> "FlatGroundResolver":
        w, h = image_size
        f = (w / 2.0) / math.tan(math.radians(hfov_deg) / 2.0)
        return cls(image_size, f, f, w / 2.0, h / 2.0, camera_height_m, pitch_deg, max_range_m)

    def resolve(self, point: Tuple[float, float]) -> ProjectionResult:
        u, v = point
        ray_cam = pixel_to_ray(u * self.width, v * self.height, self.fx, self.fy, self.cx, self.cy)
        ray = self.rotation @ ray_cam
        if ray[1] >= -1e-9:
            # At or above the horizon.
            return ProjectionResult.no_intersection()

        scale = -self.origin[1] / ray[1]
        hit = self.origin + scale * ray
        if math.hypot(hit[0], hit[2]) > self.max_range_m:
            return ProjectionResult.no_intersection()
        hit[1] = 0.0
        return ProjectionResult.hit(hit)
