import numpy as np
import pytest

from pedspeed.runtime.interfaces import Detector, GroundPlaneResolver, Renderer, ShortTermTracker
from pedspeed.runtime.orchestrator import FrameOrchestrator
from pedspeed.tracking.track import Track
from pedspeed.utils.config import EngineConfig
from pedspeed.utils.types import Detection, DetectorResult, FramePacket, ProjectionResult, TrackerResult

PERSON_BOX = (0.1, 0.2, 0.3, 0.8)


class ScriptedDetector(Detector):
    def __init__(self, batches=None, fail=False, raise_error=False):
        self.batches = list(batches or [])
        self.fail = fail
        self.raise_error = raise_error
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        if self.raise_error:
            raise RuntimeError("model crashed")
        if self.fail:
            return DetectorResult.failed("offline")
        return DetectorResult.ok(self.batches.pop(0) if self.batches else [])


class ShiftTracker(ShortTermTracker):
    """Moves every box right by dx; dx=None means the tracker always loses the box."""

    def __init__(self, dx=None, raise_error=False):
        self.dx = dx
        self.raise_error = raise_error
        self.forgotten = []

    def track(self, track_id, bbox, frame):
        if self.raise_error:
            raise RuntimeError("tracker crashed")
        if self.dx is None:
            return TrackerResult.lost()
        x1, y1, x2, y2 = bbox
        return TrackerResult.located((x1 + self.dx, y1, x2 + self.dx, y2))

    def forget(self, track_id):
        self.forgotten.append(track_id)


class LinearResolver(GroundPlaneResolver):
    """Image point (u, v) -> ground point (10u, 0, 10v)."""

    def __init__(self, hit=True):
        self.hit = hit

    def resolve(self, point):
        if not self.hit:
            return ProjectionResult.no_intersection()
        u, v = point
        return ProjectionResult.hit((10.0 * u, 0.0, 10.0 * v))


class RecordingRenderer(Renderer):
    def __init__(self, fail=False):
        self.updates = []
        self.released = []
        self.fail = fail

    def update(self, snapshots):
        if self.fail:
            raise RuntimeError("gpu gone")
        self.updates.append(snapshots)

    def release(self, track_id):
        self.released.append(track_id)


def person(box=PERSON_BOX, conf=0.9, label="person"):
    return Detection(label, conf, box)


def make(detector=None, tracker=None, resolver=None, renderer=None, **cfg):
    cfg.setdefault("detection_interval", 1)
    return FrameOrchestrator(
        EngineConfig(**cfg),
        detector=detector or ScriptedDetector(),
        tracker=tracker or ShiftTracker(),
        resolver=resolver or LinearResolver(),
        renderer=renderer,
    )


def packet(t):
    return FramePacket(frame=np.zeros((4, 4, 3), dtype=np.uint8), timestamp=t)


def test_detector_runs_on_cadence():
    det = ScriptedDetector()
    orch = make(detector=det, detection_interval=5)
    results = [orch.process_frame(packet(0.1 * i)) for i in range(1, 11)]
    assert det.calls == 2
    assert [r.frame_id for r in results if r.detection_ran] == [5, 10]


def test_detection_spawns_located_track():
    renderer = RecordingRenderer()
    orch = make(detector=ScriptedDetector([[person()]]), renderer=renderer)
    result = orch.process_frame(packet(0.1))

    assert len(result.tracks) == 1
    snap = result.tracks[0]
    assert result.spawned_ids == [snap.track_id]
    assert snap.world_position == pytest.approx((2.0, 0.0, 8.0))
    assert snap.speed == 0.0
    assert snap.confidence == pytest.approx(0.9)
    assert renderer.updates[-1] == result.tracks


def test_detections_filtered_by_label_and_confidence():
    dets = [person(label="car"), person(conf=0.5), person(box=(0.6, 0.1, 0.8, 0.9), label="Person", conf=0.51)]
    orch = make(detector=ScriptedDetector([dets]))
    result = orch.process_frame(packet(0.1))
    assert result.detection_count == 1
    assert len(orch.store) == 1


def test_tracking_updates_speed_and_direction():
    orch = make(detector=ScriptedDetector([[person()]]), tracker=ShiftTracker(dx=0.01))
    orch.process_frame(packet(0.1))
    result = orch.process_frame(packet(0.2))

    snap = result.tracks[0]
    # Foot point moves 0.01 per frame -> 0.1 m per 0.1 s.
    assert snap.speed == pytest.approx(1.0)
    assert snap.direction == pytest.approx((0.3, 0.0, 0.0))
    assert snap.world_position == pytest.approx((2.1, 0.0, 8.0))


def test_detection_match_updates_kinematics_over_gap():
    shifted = (0.12, 0.2, 0.32, 0.8)
    det = ScriptedDetector([[person(box=shifted, conf=0.7)]])
    orch = make(detector=det, detection_interval=5)
    orch.store.append(Track(track_id="seed", bbox=PERSON_BOX, last_update_time=0.0))
    orch.store.get("seed").world_position = np.array([2.0, 0.0, 8.0])
    orch.store.get("seed").position_time = 0.0

    for i in range(1, 5):
        orch.process_frame(packet(0.1 * i))
    result = orch.process_frame(packet(0.5))

    assert [s.track_id for s in result.tracks] == ["seed"]
    snap = result.tracks[0]
    assert snap.bbox == shifted
    assert snap.confidence == pytest.approx(0.7)
    assert snap.speed == pytest.approx(0.4)
    assert orch.store.get("seed").last_update_time == 0.5


def test_lost_tracks_expire_once_at_boundary():
    renderer = RecordingRenderer()
    tracker = ShiftTracker(dx=None)
    orch = make(detector=ScriptedDetector([[person()]]), tracker=tracker, renderer=renderer)

    first = orch.process_frame(packet(0.0))
    tid = first.tracks[0].track_id
    speeds = set()
    directions = set()

    mid = orch.process_frame(packet(0.5))
    speeds.add(mid.tracks[0].speed)
    directions.add(mid.tracks[0].direction)
    assert mid.expired == []

    end = orch.process_frame(packet(1.0))
    assert end.expired_ids == [tid]
    assert end.tracks == []
    assert renderer.released == [tid]
    assert tracker.forgotten == [tid]

    for t in (1.5, 2.0, 3.0):
        assert orch.process_frame(packet(t)).expired == []
    assert renderer.released == [tid]
    assert speeds == {0.0}
    assert directions == {(0.0, 0.0, 0.0)}


def test_idle_cycles_leave_kinematics_untouched():
    orch = make(detector=ScriptedDetector(fail=True), tracker=ShiftTracker(dx=None))
    trk = Track(track_id="a", bbox=PERSON_BOX, last_update_time=0.0, speed=1.2)
    trk.direction = np.array([0.0, 0.0, 0.5])
    orch.store.append(trk)

    expired_at = []
    for i in range(1, 16):
        result = orch.process_frame(packet(0.1 * i))
        if "a" in result.expired_ids:
            expired_at.append(result.frame_id)
            assert result.expired[0].speed == 1.2
            assert result.expired[0].direction == (0.0, 0.0, 0.5)
        elif result.tracks:
            assert result.tracks[0].speed == 1.2
    assert expired_at == [10]


def test_stale_frames_are_discarded():
    det = ScriptedDetector([[person()]])
    orch = make(detector=det)
    orch.process_frame(packet(1.0))
    stale = orch.process_frame(packet(1.0))
    older = orch.process_frame(packet(0.5))

    assert stale.stale and older.stale
    assert orch.frame_count == 1
    assert det.calls == 1
    assert len(stale.tracks) == 1


def test_collaborator_errors_are_contained():
    renderer = RecordingRenderer(fail=True)
    orch = make(detector=ScriptedDetector(raise_error=True), tracker=ShiftTracker(raise_error=True), renderer=renderer)
    orch.store.append(Track(track_id="a", bbox=PERSON_BOX, last_update_time=0.0))

    result = orch.process_frame(packet(0.5))
    assert [s.track_id for s in result.tracks] == ["a"]
    assert result.tracks[0].bbox == PERSON_BOX
    assert any("detector" in w for w in result.warnings)
    assert any("renderer" in w for w in result.warnings)


def test_detector_failure_skips_association():
    orch = make(detector=ScriptedDetector(fail=True))
    result = orch.process_frame(packet(0.1))
    assert result.detection_ran
    assert result.tracks == []
    assert result.warnings


def test_projection_miss_leaves_track_unlocated():
    orch = make(detector=ScriptedDetector([[person()]]), tracker=ShiftTracker(dx=0.01), resolver=LinearResolver(hit=False))
    orch.process_frame(packet(0.1))
    result = orch.process_frame(packet(0.2))
    snap = result.tracks[0]
    assert snap.world_position is None
    assert snap.bbox == pytest.approx((0.11, 0.2, 0.31, 0.8))
    # Detection match at t=0.1 is the last update; the tracked box alone does not refresh it.
    assert orch.store.get(snap.track_id).last_update_time == pytest.approx(0.1)


def test_reset_releases_everything():
    renderer = RecordingRenderer()
    orch = make(detector=ScriptedDetector([[person(), person(box=(0.6, 0.1, 0.8, 0.9))]]), renderer=renderer)
    result = orch.process_frame(packet(0.1))
    orch.reset()
    assert len(orch.store) == 0
    assert sorted(renderer.released) == sorted(s.track_id for s in result.tracks)
    assert orch.frame_count == 0


class FrameLog(ShiftTracker):
    def __init__(self, dx=None):
        super().__init__(dx)
        self.begun = []

    def begin_frame(self, frame):
        self.begun.append(frame)


class NaNResolver(GroundPlaneResolver):
    def resolve(self, point):
        return ProjectionResult.hit((float("nan"), 0.0, 1.0))


def test_tracker_sees_every_frame_even_without_tracks():
    tracker = FrameLog(dx=0.01)
    det = ScriptedDetector([[], [], [person()]])
    orch = make(detector=det, tracker=tracker)
    packets = [packet(0.1 * i) for i in range(1, 5)]
    for p in packets:
        orch.process_frame(p)
    orch.process_frame(packets[-1])  # stale, not forwarded

    assert [id(f) for f in tracker.begun] == [id(p.frame) for p in packets]


def test_non_finite_ground_point_does_not_refresh_expiry():
    orch = make(detector=ScriptedDetector(fail=True), tracker=ShiftTracker(dx=0.01), resolver=NaNResolver())
    orch.store.append(Track(track_id="a", bbox=PERSON_BOX, last_update_time=0.0))

    mid = orch.process_frame(packet(0.5))
    assert mid.tracks[0].world_position is None
    assert orch.store.get("a").last_update_time == 0.0

    end = orch.process_frame(packet(1.0))
    assert end.expired_ids == ["a"]
    assert len(orch.store) == 0


def test_summary_counts_moving_tracks():
    dets = [person(), person(box=(0.6, 0.1, 0.8, 0.9))]
    orch = make(detector=ScriptedDetector([dets]), tracker=ShiftTracker(dx=0.01))
    orch.process_frame(packet(0.1))
    result = orch.process_frame(packet(0.2))

    assert [s.speed > 0 for s in result.tracks] == [True, True]
    assert len(result.moving_tracks(min_speed=0.5)) == 2
    assert result.moving_tracks(min_speed=5.0) == []
    assert "moving=2" in result.summary()
