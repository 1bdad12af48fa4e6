from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Tuple

try:
    import cv2
except ImportError:  # pragma: no cover
    cv2 = None

from pedspeed.inputs.base_input import BaseInput
from pedspeed.utils.logger import get_logger
from pedspeed.utils.types import FramePacket


@dataclass
class VideoMeta:
    fps: float
    width: int
    height: int
    frame_count: int


class VideoInput(BaseInput):
    """
    Recorded video as a camera feed.

    Timestamps come from the source frame index and the container fps
    (or `frame_rate` when given), so a replay is deterministic and skipped
    frames still advance time. `stride` keeps every n-th frame and
    `max_frames` caps how many frames are yielded.
    """

    def __init__(
        self,
        path: str | Path,
        allow_missing: bool = False,
        frame_rate: Optional[float] = None,
        stride: int = 1,
        max_frames: Optional[int] = None,
    ):
        if stride < 1:
            raise ValueError(f"stride must be >= 1, got {stride}")
        self.path = Path(path)
        self.logger = get_logger(__name__)
        self.frame_rate = frame_rate
        self.stride = stride
        self.max_frames = max_frames
        self.allow_missing = allow_missing
        self.cap = None
        self.meta: Optional[VideoMeta] = None
        self.start()

    def _inert(self, reason: str, error: Exception) -> None:
        if not self.allow_missing:
            raise error
        self.logger.warning("%s; VideoInput stays inert.", reason)

    def start(self) -> None:
        if self.cap is not None:
            return
        if cv2 is None:
            self._inert("OpenCV not available", ImportError("opencv-python is required for VideoInput"))
            return
        if not self.path.exists():
            self._inert(f"Video {self.path} not found", FileNotFoundError(f"Video not found: {self.path}"))
            return

        cap = cv2.VideoCapture(str(self.path))
        if not cap.isOpened():
            self._inert(f"Could not open video {self.path}", RuntimeError(f"Could not open video: {self.path}"))
            return

        self.cap = cap
        self.meta = VideoMeta(
            fps=float(self.frame_rate or cap.get(cv2.CAP_PROP_FPS) or 30.0),
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0),
        )
        self.logger.info(
            "Video opened: %s fps=%.2f size=%dx%d frames=%d stride=%d",
            self.path,
            self.meta.fps,
            self.meta.width,
            self.meta.height,
            self.meta.frame_count,
            self.stride,
        )

    @property
    def fps(self) -> float:
        if self.meta:
            return self.meta.fps
        return float(self.frame_rate or 30.0)

    @property
    def expected_frames(self) -> Optional[int]:
        """Number of frames frames() will yield, when the container reports a length."""
        if self.meta is None or self.meta.frame_count <= 0:
            return self.max_frames
        n = (self.meta.frame_count + self.stride - 1) // self.stride
        return min(n, self.max_frames) if self.max_frames is not None else n

    def frames(self) -> Iterator[Tuple[int, FramePacket]]:
        if self.cap is None:
            return
        src_idx = 0
        yielded = 0
        while self.max_frames is None or yielded < self.max_frames:
            ok, frame = self.cap.read()
            if not ok:
                break
            src_idx += 1
            if (src_idx - 1) % self.stride:
                continue
            yielded += 1
            yield src_idx, FramePacket(frame=frame, timestamp=src_idx / self.fps)

    def stop(self) -> None:
        if self.cap is None:
            return
        self.cap.release()
        self.cap = None
        self.logger.info("Closed video %s", self.path)
