import pytest

from pedspeed.tracking.track import Track
from pedspeed.tracking.track_store import TrackStore
from pedspeed.utils.types import Detection


def make_track(track_id, t=0.0):
    return Track(track_id=track_id, bbox=(0, 0, 1, 1), last_update_time=t)


def test_append_and_lookup():
    store = TrackStore()
    a, b = make_track("a"), make_track("b")
    store.append(a)
    store.append(b)
    assert len(store) == 2
    assert store.get("b") is b
    assert "a" in store
    assert store.index_of(b) == 1
    assert store.index_of(make_track("zzz")) is None
    assert [t.track_id for t in store.all_tracks()] == ["a", "b"]


def test_append_rejects_duplicate_id():
    store = TrackStore()
    store.append(make_track("a"))
    with pytest.raises(ValueError):
        store.append(make_track("a"))


def test_remove_where_returns_removed_and_keeps_order():
    store = TrackStore()
    for tid, t in (("a", 0.0), ("b", 0.9), ("c", 0.1), ("d", 0.95)):
        store.append(make_track(tid, t))
    removed = store.remove_where(lambda trk: trk.last_update_time < 0.5)
    assert [t.track_id for t in removed] == ["a", "c"]
    assert [t.track_id for t in store] == ["b", "d"]
    assert store.get("a") is None
    assert store.remove_where(lambda trk: False) == []


def test_all_tracks_is_a_copy():
    store = TrackStore()
    store.append(make_track("a"))
    tracks = store.all_tracks()
    tracks.clear()
    assert len(store) == 1


def test_track_from_detection_defaults():
    trk = Track.from_detection(Detection("person", 0.8, (0.1, 0.1, 0.3, 0.6)), timestamp=2.0)
    assert trk.confidence == pytest.approx(0.8)
    assert trk.world_position is None
    assert trk.speed == 0.0
    assert not trk.direction.any()
    assert trk.last_update_time == 2.0
    other = Track.from_detection(Detection("person", 0.8, (0.1, 0.1, 0.3, 0.6)), timestamp=2.0)
    assert other.track_id != trk.track_id


def test_snapshot_is_detached_copy():
    trk = make_track("a")
    snap = trk.snapshot()
    trk.speed = 3.0
    trk.direction[0] = 1.0
    assert snap.speed == 0.0
    assert snap.direction == (0.0, 0.0, 0.0)
    assert snap.world_position is None
