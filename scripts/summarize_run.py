#!/usr/bin/env python3
import json
import sys
from pathlib import Path
from statistics import mean, median


def safe_mean(xs):
    xs = [x for x in xs if x is not None]
    return mean(xs) if xs else None


def pct(n, d):
    return (100.0 * n / d) if d else 0.0


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/summarize_run.py results/run_YYYYMMDD_HHMMSS")
        sys.exit(1)

    run_dir = Path(sys.argv[1])
    metrics_path = run_dir / "metrics.json"
    if not metrics_path.exists():
        raise FileNotFoundError(f"Missing: {metrics_path}")

    m = json.loads(metrics_path.read_text())
    frames = m.get("frames", [])
    n = len(frames)
    if n == 0:
        print("No frames found in metrics.json")
        return

    fps_vals = [f.get("fps") for f in frames if f.get("fps") is not None]
    stages = ["tracking", "detection", "association", "projection", "expiry", "render"]

    det_frames = sum(1 for f in frames if f.get("detection_ran"))
    track_counts = [f.get("track_count", 0) for f in frames]
    spawned = sum(f.get("spawned", 0) for f in frames)
    expired = sum(f.get("expired", 0) for f in frames)
    speeds = [s for f in frames for s in (f.get("speeds") or {}).values()]
    warn_frames = sum(1 for f in frames if f.get("warnings"))

    print("\n================ PedSpeed RUN SUMMARY ================")
    print(f"Run dir: {run_dir}")
    print(f"Frames: {n}")
    if fps_vals:
        print(f"FPS  avg={mean(fps_vals):.2f}  med={median(fps_vals):.2f}  min={min(fps_vals):.2f}  max={max(fps_vals):.2f}")
    else:
        print("FPS: (missing)")

    print("\nLatency (ms) (avg):")
    for stage in stages:
        sm = safe_mean([f.get("stages_ms", {}).get(stage) for f in frames])
        print(f"  {stage + ':':14s} {sm:.2f}" if sm is not None else f"  {stage + ':':14s} (missing)")

    print("\nDetection cadence:")
    print(f"  detection frames: {det_frames}/{n} ({pct(det_frames, n):.1f}%)")

    print("\nTracks:")
    print(f"  live per frame: avg={mean(track_counts):.2f}  max={max(track_counts)}")
    print(f"  spawned: {spawned}  expired: {expired}")

    if speeds:
        print(f"\nSpeed stats (m/s): avg={mean(speeds):.2f}  med={median(speeds):.2f}  max={max(speeds):.2f}")
    else:
        print("\nSpeed stats: (no located tracks logged)")

    print(f"\nFrames with warnings: {warn_frames} ({pct(warn_frames, n):.1f}%)")
    print("======================================================\n")


if __name__ == "__main__":
    main()
