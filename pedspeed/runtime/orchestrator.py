from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pedspeed.runtime.frame_result import FrameResult
from pedspeed.runtime.interfaces import Detector, GroundPlaneResolver, Renderer, ShortTermTracker
from pedspeed.tracking.association import AssociationEngine
from pedspeed.tracking.kinematics import KinematicEstimator
from pedspeed.tracking.track import Track
from pedspeed.tracking.track_store import TrackStore
from pedspeed.utils.config import EngineConfig
from pedspeed.utils.geometry import foot_point, is_finite
from pedspeed.utils.logger import get_logger
from pedspeed.utils.timing import FPSMeter, StageTimer
from pedspeed.utils.types import (
    Detection,
    DetectorStatus,
    FramePacket,
    ProjectionResult,
    ProjectionStatus,
    RuntimeStats,
    TrackerResult,
    TrackerStatus,
    TrackSnapshot,
)


class FrameOrchestrator:
    """
    Per-frame tracking cycle:
      short-term tracking (every frame) -> detection + association (every
      `detection_interval` frames) -> ground projection + kinematics for
      every track whose box changed -> expiry -> render.

    Collaborator failures are handled per track and per frame; process_frame()
    itself does not raise for them.
    """

    def __init__(
        self,
        config: EngineConfig,
        detector: Detector,
        tracker: ShortTermTracker,
        resolver: GroundPlaneResolver,
        renderer: Optional[Renderer] = None,
        store: Optional[TrackStore] = None,
        logger: Optional[logging.Logger] = None,
        log_every: int = 30,
    ):
        self.config = config
        self.detector = detector
        self.tracker = tracker
        self.resolver = resolver
        self.renderer = renderer
        self.store = store if store is not None else TrackStore()
        self.logger = logger or get_logger(__name__)
        self.log_every = log_every

        self.association = AssociationEngine(
            match_threshold=config.match_threshold,
            claim_policy=config.claim_policy,
        )
        self.estimator = KinematicEstimator(alpha=config.smoothing_alpha)
        self.fps_meter = FPSMeter()
        self.frame_count = 0
        self._last_ts: Optional[float] = None

    def process_frame(self, packet: FramePacket) -> FrameResult:
        t = float(packet.timestamp)
        if self._last_ts is not None and t <= self._last_ts:
            self.logger.warning("Discarding stale frame t=%.3f (last processed t=%.3f)", t, self._last_ts)
            return FrameResult(frame_id=self.frame_count, timestamp=t, tracks=self.snapshot(), stale=True)
        self._last_ts = t
        self.frame_count += 1

        timer = StageTimer()
        warnings: List[str] = []
        changed: Dict[str, None] = {}

        # Stage: short-term tracking
        with timer.stage("tracking"):
            self._begin_tracker_frame(packet.frame)
            for trk in self.store:
                trk.age += 1
                res = self._run_tracker(trk, packet.frame)
                if res.kind is TrackerStatus.LOCATED and res.bbox is not None:
                    trk.bbox = res.bbox
                    changed[trk.track_id] = None

        # Stage: detection + association, gated by cadence
        detection_ran = self.frame_count % self.config.detection_interval == 0
        detections: List[Detection] = []
        spawned_ids: List[str] = []
        if detection_ran:
            with timer.stage("detection"):
                found = self._run_detector(packet.frame, warnings)
            if found is not None:
                detections = found
                with timer.stage("association"):
                    assoc = self.association.associate(self.store, detections, t)
                for tid in assoc.matched_ids + assoc.spawned_ids:
                    changed[tid] = None
                spawned_ids = assoc.spawned_ids

        # Stage: ground projection + kinematics
        with timer.stage("projection"):
            for tid in changed:
                trk = self.store.get(tid)
                if trk is None:
                    continue
                proj = self._run_resolver(trk)
                if proj.kind is not ProjectionStatus.HIT or proj.point is None:
                    continue
                if not is_finite(proj.point):
                    self.logger.warning("Ignoring non-finite ground point for track %s", trk.track_id[:8])
                    continue
                ref_t = trk.position_time if trk.position_time is not None else t
                self.estimator.update(trk, proj.point, t - ref_t, timestamp=t)
                trk.last_update_time = t

        with timer.stage("expiry"):
            expired = self._expire(t)

        snapshots = self.snapshot()
        with timer.stage("render"):
            self._render(snapshots, warnings)

        result = FrameResult(
            frame_id=self.frame_count,
            timestamp=t,
            tracks=snapshots,
            spawned_ids=spawned_ids,
            expired=expired,
            detection_ran=detection_ran,
            detection_count=len(detections),
            warnings=warnings,
            runtime=RuntimeStats(fps=self.fps_meter.tick(), stages_ms=dict(timer.stages_ms)),
        )
        if self.log_every > 0 and self.frame_count % self.log_every == 0:
            self.logger.info("[TRACKS] %s", result.summary())
        return result

    def snapshot(self) -> List[TrackSnapshot]:
        return [trk.snapshot() for trk in self.store]

    def reset(self) -> None:
        for trk in self.store.all_tracks():
            self._release(trk.track_id)
        self.store.clear()
        self.frame_count = 0
        self._last_ts = None

    def _keep_detection(self, det: Detection) -> bool:
        return det.label.lower() == self.config.target_label.lower() and det.confidence > self.config.min_confidence

    def _run_detector(self, frame: Any, warnings: List[str]) -> Optional[List[Detection]]:
        try:
            res = self.detector.detect(frame)
        except Exception as exc:
            self.logger.warning("Detector raised on frame %d: %s", self.frame_count, exc)
            warnings.append(f"detector error: {exc}")
            return None
        if res.kind is not DetectorStatus.OK:
            self.logger.warning("Detector failed on frame %d: %s", self.frame_count, res.error)
            warnings.append(f"detector failed: {res.error}")
            return None
        return [d for d in res.detections if self._keep_detection(d)]

    def _begin_tracker_frame(self, frame: Any) -> None:
        try:
            self.tracker.begin_frame(frame)
        except Exception as exc:
            self.logger.warning("Short-term tracker failed to start frame %d: %s", self.frame_count, exc)

    def _run_tracker(self, trk: Track, frame: Any) -> TrackerResult:
        try:
            return self.tracker.track(trk.track_id, trk.bbox, frame)
        except Exception as exc:
            self.logger.warning("Short-term tracker raised for track %s: %s", trk.track_id[:8], exc)
            return TrackerResult.lost()

    def _run_resolver(self, trk: Track) -> ProjectionResult:
        try:
            return self.resolver.resolve(foot_point(trk.bbox))
        except Exception as exc:
            self.logger.warning("Ground resolver raised for track %s: %s", trk.track_id[:8], exc)
            return ProjectionResult.no_intersection()

    def _expire(self, t: float) -> List[TrackSnapshot]:
        window = self.config.expiry_window_s
        stale = [trk for trk in self.store if t - trk.last_update_time >= window]
        if not stale:
            return []
        for trk in stale:
            self._release(trk.track_id)
            self.logger.debug("Expired track %s (idle %.3fs)", trk.track_id[:8], t - trk.last_update_time)
        stale_ids = {trk.track_id for trk in stale}
        removed = self.store.remove_where(lambda trk: trk.track_id in stale_ids)
        return [trk.snapshot() for trk in removed]

    def _release(self, track_id: str) -> None:
        try:
            self.tracker.forget(track_id)
        except Exception as exc:
            self.logger.warning("Short-term tracker failed to forget %s: %s", track_id[:8], exc)
        if self.renderer is None:
            return
        try:
            self.renderer.release(track_id)
        except Exception as exc:
            self.logger.warning("Renderer failed to release %s: %s", track_id[:8], exc)

    def _render(self, snapshots: List[TrackSnapshot], warnings: List[str]) -> None:
        if self.renderer is None:
            return
        try:
            self.renderer.update(snapshots)
        except Exception as exc:
            self.logger.warning("Renderer update failed: %s", exc)
            warnings.append(f"renderer error: {exc}")
