from __future__ import annotations

from typing import Optional

import numpy as np

from pedspeed.tracking.track import Track
from pedspeed.utils.geometry import EPS, ema, is_finite, length, normalize
from pedspeed.utils.logger import get_logger


class KinematicEstimator:
    """
    Smoothed heading and instantaneous speed from successive ground positions.

    direction = alpha * direction_prev + (1 - alpha) * normalize(new - old)
    speed     = |new - old| / elapsed

    alpha: weight of the previous direction (0.7 ~ three-update time constant)
    """

    def __init__(self, alpha: float = 0.7):
        if not 0.0 <= alpha <= 1.0:
            raise ValueError(f"alpha must be within [0, 1], got {alpha}")
        self.alpha = alpha
        self.logger = get_logger(__name__)

    def update(self, track: Track, new_position, elapsed: float, timestamp: Optional[float] = None) -> bool:
        """
        Returns True when speed and direction were recomputed.
        The position is recorded whenever it is finite.
        """
        new_pos = np.asarray(new_position, dtype=np.float64).reshape(3)
        if not is_finite(new_pos):
            self.logger.warning("Ignoring non-finite position for track %s", track.track_id[:8])
            return False

        old_pos = track.world_position
        track.world_position = new_pos
        if timestamp is not None:
            track.position_time = float(timestamp)
        if old_pos is None or elapsed <= 0:
            return False

        delta = new_pos - old_pos
        if length(delta) <= EPS:
            # Coincident positions carry no heading.
            return False

        direction = ema(track.direction, normalize(delta), self.alpha)
        if is_finite(direction):
            track.direction = direction
        else:
            self.logger.warning("Discarding non-finite direction for track %s", track.track_id[:8])

        speed = length(delta) / float(elapsed)
        if np.isfinite(speed):
            track.speed = speed
        return True
