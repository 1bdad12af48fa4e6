from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional

from pedspeed.tracking.track import Track


class TrackStore:
    """
    Owns the live tracks of one orchestrator.
    Iteration follows insertion order so runs are reproducible.
    """

    def __init__(self) -> None:
        self._tracks: List[Track] = []
        self._ids: Dict[str, Track] = {}

    def all_tracks(self) -> List[Track]:
        return list(self._tracks)

    def append(self, track: Track) -> None:
        if track.track_id in self._ids:
            raise ValueError(f"Duplicate track id: {track.track_id}")
        self._tracks.append(track)
        self._ids[track.track_id] = track

    def remove_where(self, predicate: Callable[[Track], bool]) -> List[Track]:
        """Drop every track matching predicate; returns the removed tracks."""
        kept: List[Track] = []
        removed: List[Track] = []
        for trk in self._tracks:
            (removed if predicate(trk) else kept).append(trk)
        self._tracks = kept
        for trk in removed:
            del self._ids[trk.track_id]
        return removed

    def index_of(self, track: Track) -> Optional[int]:
        for idx, trk in enumerate(self._tracks):
            if trk.track_id == track.track_id:
                return idx
        return None

    def get(self, track_id: str) -> Optional[Track]:
        return self._ids.get(track_id)

    def clear(self) -> None:
        self._tracks = []
        self._ids = {}

    def __len__(self) -> int:
        return len(self._tracks)

    def __iter__(self) -> Iterator[Track]:
        return iter(list(self._tracks))

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._ids
