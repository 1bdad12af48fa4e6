from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np

# (x1, y1, x2, y2) in normalized image coordinates, origin top-left, y down.
BBox = Tuple[float, float, float, float]


@dataclass
class FramePacket:
    frame: object
    timestamp: float
    sensor_id: str = "camera_front"


@dataclass(frozen=True)
class Detection:
    label: str
    confidence: float
    bbox: BBox


class DetectorStatus(str, Enum):
    OK = "OK"
    FAILED = "FAILED"


class TrackerStatus(str, Enum):
    LOCATED = "LOCATED"
    LOST = "LOST"


class ProjectionStatus(str, Enum):
    HIT = "HIT"
    NO_INTERSECTION = "NO_INTERSECTION"


@dataclass(frozen=True)
class DetectorResult:
    kind: DetectorStatus
    detections: Tuple[Detection, ...] = ()
    error: Optional[str] = None

    @classmethod
    def ok(cls, detections: List[Detection]) -> "DetectorResult":
        return cls(kind=DetectorStatus.OK, detections=tuple(detections))

    @classmethod
    def failed(cls, error: str) -> "DetectorResult":
        return cls(kind=DetectorStatus.FAILED, error=error)


@dataclass(frozen=True)
class TrackerResult:
    kind: TrackerStatus
    bbox: Optional[BBox] = None

    @classmethod
    def located(cls, bbox: BBox) -> "TrackerResult":
        return cls(kind=TrackerStatus.LOCATED, bbox=tuple(float(v) for v in bbox))

    @classmethod
    def lost(cls) -> "TrackerResult":
        return cls(kind=TrackerStatus.LOST)


@dataclass(frozen=True)
class ProjectionResult:
    kind: ProjectionStatus
    point: Optional[np.ndarray] = None

    @classmethod
    def hit(cls, point) -> "ProjectionResult":
        return cls(kind=ProjectionStatus.HIT, point=np.asarray(point, dtype=np.float64).reshape(3))

    @classmethod
    def no_intersection(cls) -> "ProjectionResult":
        return cls(kind=ProjectionStatus.NO_INTERSECTION)


@dataclass(frozen=True)
class TrackSnapshot:
    """Read-only copy of a track handed to renderers."""

    track_id: str
    bbox: BBox
    world_position: Optional[Tuple[float, float, float]]
    speed: float
    direction: Tuple[float, float, float]
    confidence: float


@dataclass
class RuntimeStats:
    fps: float = 0.0
    stages_ms: dict = field(default_factory=dict)
