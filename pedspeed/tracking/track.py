from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from pedspeed.utils.types import BBox, Detection, TrackSnapshot


def new_track_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Track:
    track_id: str
    bbox: BBox  # (x1, y1, x2, y2), normalized
    last_update_time: float
    confidence: float = 0.0
    world_position: Optional[np.ndarray] = None  # (x, y, z) on the ground plane
    direction: np.ndarray = field(default_factory=lambda: np.zeros(3, dtype=np.float64))
    speed: float = 0.0
    position_time: Optional[float] = None  # timestamp of world_position
    age: int = 0
    hits: int = 0

    @classmethod
    def from_detection(cls, detection: Detection, timestamp: float) -> "Track":
        return cls(
            track_id=new_track_id(),
            bbox=tuple(float(v) for v in detection.bbox),
            last_update_time=float(timestamp),
            confidence=float(detection.confidence),
            hits=1,
        )

    def snapshot(self) -> TrackSnapshot:
        pos = None
        if self.world_position is not None:
            pos = tuple(float(v) for v in self.world_position)
        return TrackSnapshot(
            track_id=self.track_id,
            bbox=tuple(self.bbox),
            world_position=pos,
            speed=float(self.speed),
            direction=tuple(float(v) for v in self.direction),
            confidence=float(self.confidence),
        )
