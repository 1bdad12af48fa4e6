import abc
from typing import Any, List, Tuple

from pedspeed.utils.types import BBox, DetectorResult, ProjectionResult, TrackerResult, TrackSnapshot


class Detector(abc.ABC):
    @abc.abstractmethod
    def detect(self, frame: Any) -> DetectorResult:
        ...


class ShortTermTracker(abc.ABC):
    def begin_frame(self, frame: Any) -> None:
        """Called once per processed frame, before any track() call and even when no track is live."""
        return

    @abc.abstractmethod
    def track(self, track_id: str, bbox: BBox, frame: Any) -> TrackerResult:
        ...

    def forget(self, track_id: str) -> None:
        """Release per-track state once the track has expired."""
        return


class GroundPlaneResolver(abc.ABC):
    @abc.abstractmethod
    def resolve(self, point: Tuple[float, float]) -> ProjectionResult:
        ...


class Renderer(abc.ABC):
    @abc.abstractmethod
    def update(self, snapshots: List[TrackSnapshot]) -> None:
        ...

    @abc.abstractmethod
    def release(self, track_id: str) -> None:
        ...
