from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from pedspeed.tracking.track import Track
from pedspeed.tracking.track_store import TrackStore
from pedspeed.utils.geometry import iou
from pedspeed.utils.logger import get_logger
from pedspeed.utils.types import Detection


@dataclass
class AssociationResult:
    matched_ids: List[str] = field(default_factory=list)
    spawned_ids: List[str] = field(default_factory=list)
    ignored: int = 0


class AssociationEngine:
    """
    Greedy IoU association, first match wins.

    Each detection is compared against the tracks in store order and the
    first track whose IoU exceeds `match_threshold` takes the detection.
    Unmatched detections spawn new tracks after the whole batch is scanned.

    claim_policy:
      "exclusive" - a track can take one detection per batch; a later
                    detection whose first match is an already claimed
                    track is dropped as a duplicate.
      "overwrite" - claimed tracks stay eligible, last detection wins.
    """

    def __init__(self, match_threshold: float = 0.5, claim_policy: str = "exclusive"):
        if claim_policy not in ("exclusive", "overwrite"):
            raise ValueError(f"Unknown claim policy: {claim_policy!r}")
        self.match_threshold = match_threshold
        self.claim_policy = claim_policy
        self.logger = get_logger(__name__)

    def _first_match(self, detection: Detection, tracks: List[Track]) -> Optional[Track]:
        for trk in tracks:
            if iou(detection.bbox, trk.bbox) > self.match_threshold:
                return trk
        return None

    def associate(self, store: TrackStore, detections: Iterable[Detection], now: float) -> AssociationResult:
        result = AssociationResult()
        candidates = store.all_tracks()
        claimed: Set[str] = set()
        spawned: List[Track] = []

        for det in detections:
            trk = self._first_match(det, candidates)
            if trk is None:
                spawned.append(Track.from_detection(det, now))
                continue

            if trk.track_id in claimed and self.claim_policy == "exclusive":
                result.ignored += 1
                self.logger.debug("Detection %s dropped, track %s already claimed", det.bbox, trk.track_id[:8])
                continue

            trk.bbox = tuple(float(v) for v in det.bbox)
            trk.confidence = float(det.confidence)
            trk.last_update_time = float(now)
            trk.hits += 1
            if trk.track_id not in claimed:
                claimed.add(trk.track_id)
                result.matched_ids.append(trk.track_id)

        for trk in spawned:
            store.append(trk)
            result.spawned_ids.append(trk.track_id)
            self.logger.debug("Spawned track %s bbox=%s conf=%.2f", trk.track_id[:8], trk.bbox, trk.confidence)

        return result
