from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

try:
    import cv2
except ImportError:  # pragma: no cover
    cv2 = None

from pedspeed.runtime.interfaces import ShortTermTracker
from pedspeed.utils.geometry import clip_box
from pedspeed.utils.logger import get_logger
from pedspeed.utils.types import BBox, TrackerResult

TRACKER_FACTORIES = {
    "mil": "TrackerMIL_create",
    "kcf": "TrackerKCF_create",
    "csrt": "TrackerCSRT_create",
}


def to_pixel_rect(bbox: BBox, shape: Tuple[int, ...]) -> Tuple[int, int, int, int]:
    h, w = shape[:2]
    x1, y1, x2, y2 = clip_box(bbox)
    return int(round(x1 * w)), int(round(y1 * h)), int(round((x2 - x1) * w)), int(round((y2 - y1) * h))


def from_pixel_rect(rect, shape: Tuple[int, ...]) -> BBox:
    h, w = shape[:2]
    x, y, rw, rh = (float(v) for v in rect)
    return clip_box((x / w, y / h, (x + rw) / w, (y + rh) / h))


@dataclass
class _TrackerState:
    tracker: Any
    last_bbox: BBox


class OpenCVTracker(ShortTermTracker):
    """
    One OpenCV single-object tracker per track id.

    A tracker is (re)initialised on the previous frame whenever the box it is
    asked to follow differs from its own last output, which happens after a
    detection match or for a freshly spawned track.
    """

    def __init__(self, tracker_type: str = "mil"):
        if cv2 is None:
            raise ImportError("opencv-python is required for OpenCVTracker")
        factory_name = TRACKER_FACTORIES.get(tracker_type.lower())
        if factory_name is None:
            raise ValueError(f"Unknown tracker type {tracker_type!r}, expected one of {sorted(TRACKER_FACTORIES)}")
        factory = getattr(cv2, factory_name, None) or getattr(getattr(cv2, "legacy", None), factory_name, None)
        if factory is None:
            raise RuntimeError(f"cv2.{factory_name} is unavailable in this OpenCV build (KCF/CSRT need opencv-contrib-python)")
        self._factory = factory
        self.tracker_type = tracker_type.lower()
        self.logger = get_logger(__name__)
        self._states: Dict[str, _TrackerState] = {}
        self._current: Optional[Any] = None
        self._reference: Optional[Any] = None

    def begin_frame(self, frame: Any) -> None:
        """Shift the current frame into the reference slot; repeated calls with one frame are no-ops."""
        if frame is not self._current:
            self._reference = self._current
            self._current = frame

    def track(self, track_id: str, bbox: BBox, frame: Any) -> TrackerResult:
        self.begin_frame(frame)
        state = self._states.get(track_id)
        if state is None or state.last_bbox != tuple(bbox):
            ref = self._reference if self._reference is not None else frame
            rect = to_pixel_rect(bbox, ref.shape)
            if rect[2] < 1 or rect[3] < 1:
                return TrackerResult.lost()
            tracker = self._factory()
            tracker.init(ref, rect)
            state = _TrackerState(tracker=tracker, last_bbox=tuple(bbox))
            self._states[track_id] = state

        ok, rect = state.tracker.update(frame)
        if not ok or rect[2] <= 0 or rect[3] <= 0:
            return TrackerResult.lost()

        result = TrackerResult.located(from_pixel_rect(rect, frame.shape))
        state.last_bbox = result.bbox
        return result

    def forget(self, track_id: str) -> None:
        self._states.pop(track_id, None)

    @property
    def active(self) -> int:
        return len(self._states)
