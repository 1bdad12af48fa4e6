from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from pedspeed.utils.types import RuntimeStats, TrackSnapshot


@dataclass
class FrameResult:
    """
    Outcome of one orchestrator cycle.
    Renderers and the CLI read from this; nothing writes back into the store.
    """

    frame_id: int
    timestamp: float
    tracks: List[TrackSnapshot] = field(default_factory=list)
    spawned_ids: List[str] = field(default_factory=list)
    expired: List[TrackSnapshot] = field(default_factory=list)
    detection_ran: bool = False
    detection_count: int = 0
    stale: bool = False
    warnings: List[str] = field(default_factory=list)
    runtime: RuntimeStats = field(default_factory=RuntimeStats)

    @property
    def expired_ids(self) -> List[str]:
        return [s.track_id for s in self.expired]

    def moving_tracks(self, min_speed: float = 0.1) -> List[TrackSnapshot]:
        return [s for s in self.tracks if s.speed >= min_speed]

    def summary(self) -> str:
        speeds = [s.speed for s in self.tracks if s.world_position is not None]
        mean_speed = (sum(speeds) / len(speeds)) if speeds else 0.0
        return (
            f"frame={self.frame_id} "
            f"t={self.timestamp:.3f} "
            f"tracks={len(self.tracks)} "
            f"spawned={len(self.spawned_ids)} "
            f"expired={len(self.expired)} "
            f"moving={len(self.moving_tracks())} "
            f"mean_speed={mean_speed:.2f}"
        )
