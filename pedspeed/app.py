from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Tuple

try:
    import cv2
except ImportError:  # pragma: no cover
    cv2 = None

from rich.console import Console
from tqdm import tqdm

from pedspeed.inputs.video_input import VideoInput
from pedspeed.runtime.event_log import TrackEventLog
from pedspeed.runtime.orchestrator import FrameOrchestrator
from pedspeed.utils.config import EngineConfig, get, load_yaml
from pedspeed.utils.logger import setup_logger
from pedspeed.visualization.overlay import draw_hud, draw_tracks, draw_world_text


def make_run_dir(base_dir: str | Path) -> Path:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(base_dir) / f"run_{ts}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def build_orchestrator(cfg: Dict[str, Any], image_size: Tuple[int, int], logger: logging.Logger) -> FrameOrchestrator:
    """Wire the YOLO detector, OpenCV tracker, flat-ground resolver and BEV renderer."""
    from pedspeed.perception.detection.yolo import YOLODetector
    from pedspeed.perception.tracking.opencv_tracker import OpenCVTracker
    from pedspeed.projection.ground_plane import FlatGroundResolver
    from pedspeed.visualization.bev_renderer import BEVRenderer

    engine_cfg = EngineConfig.from_dict(cfg)
    detector = YOLODetector(
        model_name=get(cfg, "detector.model", "yolo11n.pt"),
        device=get(cfg, "detector.device", None),
        conf_thres=float(get(cfg, "detector.conf_thres", 0.25)),
    )
    tracker = OpenCVTracker(tracker_type=get(cfg, "short_term_tracker.type", "mil"))
    resolver = FlatGroundResolver.from_fov(
        image_size,
        hfov_deg=float(get(cfg, "ground_plane.hfov_deg", 70.0)),
        camera_height_m=float(get(cfg, "ground_plane.camera_height_m", 1.5)),
        pitch_deg=float(get(cfg, "ground_plane.pitch_deg", 12.0)),
        max_range_m=float(get(cfg, "ground_plane.max_range_m", 40.0)),
    )
    renderer = BEVRenderer(
        size=int(get(cfg, "bev.size", 500)),
        pixels_per_meter=float(get(cfg, "bev.pixels_per_meter", 20.0)),
        trail_length=int(get(cfg, "bev.trail_length", 30)),
        arrow_horizon_s=float(get(cfg, "bev.arrow_horizon_s", 0.5)),
        min_confidence=engine_cfg.min_confidence,
    )
    logger.info(
        "Engine: detection_interval=%d claim_policy=%s alpha=%.2f expiry=%.2fs",
        engine_cfg.detection_interval,
        engine_cfg.claim_policy,
        engine_cfg.smoothing_alpha,
        engine_cfg.expiry_window_s,
    )
    return FrameOrchestrator(
        engine_cfg,
        detector=detector,
        tracker=tracker,
        resolver=resolver,
        renderer=renderer,
        logger=logger,
        log_every=int(get(cfg, "runtime.log_every", 30)),
    )


def main():
    parser = argparse.ArgumentParser(description="PedSpeed - pedestrian ground-plane speed tracking")
    parser.add_argument("--config", default="configs/system.yaml", help="Path to YAML config")
    parser.add_argument("--input", required=True, help="Path to input video")
    parser.add_argument("--max-frames", type=int, default=None, help="Stop after this many processed frames")
    parser.add_argument("--stride", type=int, default=1, help="Process every n-th frame of the video")
    args = parser.parse_args()

    cfg: Dict[str, Any] = load_yaml(args.config)

    output_base = get(cfg, "runtime.output_dir", "results")
    run_dir = make_run_dir(output_base)
    logger = setup_logger(log_dir=run_dir, level=get(cfg, "runtime.log_level", "INFO"))

    console = Console()
    console.print(f"[bold]PedSpeed[/bold] run dir: {run_dir}")

    vin = VideoInput(args.input, stride=args.stride, max_frames=args.max_frames)
    logger.info("Input video: %s", args.input)
    if vin.meta is None:
        raise RuntimeError(f"No video metadata for {args.input}")

    orchestrator = build_orchestrator(cfg, (vin.meta.width, vin.meta.height), logger)
    bev_renderer = orchestrator.renderer
    event_log = TrackEventLog(run_dir)

    save_video = bool(get(cfg, "runtime.save_video", True))
    save_metrics = bool(get(cfg, "runtime.save_metrics", True))
    overlay_enabled = bool(get(cfg, "runtime.overlay.enabled", True))

    writer = None
    bev_writer = None
    if save_video:
        if cv2 is None:
            raise ImportError("opencv-python is required to save video output")
        fourcc = cv2.VideoWriter_fourcc(*"mp4v")
        out_fps = vin.meta.fps / vin.stride
        writer = cv2.VideoWriter(str(run_dir / "output.mp4"), fourcc, out_fps, (vin.meta.width, vin.meta.height))
        if not writer.isOpened():
            raise RuntimeError("Could not open VideoWriter (mp4v). Try a different codec/container.")
        bev_writer = cv2.VideoWriter(str(run_dir / "bev.mp4"), fourcc, out_fps, (bev_renderer.size, bev_renderer.size))

    metrics = {
        "project": cfg.get("project", {}),
        "input": {"path": args.input, "meta": vin.meta.__dict__},
        "tracking": cfg.get("tracking", {}),
        "frames": [],
    }

    for frame_id, packet in tqdm(vin.frames(), total=vin.expected_frames, desc="Processing"):
        result = orchestrator.process_frame(packet)
        event_log.record(result)
        render = packet.frame

        if overlay_enabled:
            render = draw_tracks(render, result.tracks)
            render = draw_world_text(render, result)
            render = draw_hud(render, result.runtime, result.warnings)

        if writer is not None:
            writer.write(render)
        if bev_writer is not None:
            bev_writer.write(bev_renderer.canvas)

        if save_metrics:
            metrics["frames"].append(
                {
                    "frame_id": frame_id,
                    "timestamp": result.timestamp,
                    "fps": result.runtime.fps,
                    "stages_ms": result.runtime.stages_ms,
                    "warnings": result.warnings,
                    "detection_ran": result.detection_ran,
                    "detection_count": result.detection_count,
                    "track_count": len(result.tracks),
                    "spawned": len(result.spawned_ids),
                    "expired": len(result.expired),
                    "speeds": {t.track_id[:8]: round(t.speed, 3) for t in result.tracks if t.world_position is not None},
                }
            )

    vin.stop()
    if writer is not None:
        writer.release()
        logger.info("Saved video: %s", run_dir / "output.mp4")
    if bev_writer is not None:
        bev_writer.release()
        logger.info("Saved BEV video: %s", run_dir / "bev.mp4")

    if save_metrics:
        metrics_path = run_dir / "metrics.json"
        metrics_path.write_text(json.dumps(metrics, indent=2), encoding="utf-8")
        logger.info("Saved metrics: %s", metrics_path)

    logger.info("Track events logged: %d", event_log.count)
    logger.info("Done.")


if __name__ == "__main__":
    main()
