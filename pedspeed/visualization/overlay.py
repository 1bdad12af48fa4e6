from __future__ import annotations

from typing import Any, List, Optional

try:
    import cv2
except ImportError:  # pragma: no cover
    cv2 = None

from pedspeed.utils.types import RuntimeStats, TrackSnapshot

TRACK_COLOR = (255, 200, 0)
LOW_CONF_COLOR = (140, 110, 40)
HUD_STAGES = ("tracking", "detection", "association", "projection", "render")


def draw_hud(frame: Any, runtime: RuntimeStats, warnings: Optional[List[str]] = None, max_warnings: int = 3):
    """FPS and per-stage latency in the top-left corner, latest warnings in red below."""
    if cv2 is None:
        return frame

    render = frame.copy()
    lines = [(f"PedSpeed  {runtime.fps:5.1f} fps", 0.6, (255, 255, 255))]
    # Stages that did not run this frame (detection off-cadence) are left out.
    lines += [(f"{name:<11s}{runtime.stages_ms[name]:6.1f} ms", 0.45, (200, 200, 200)) for name in HUD_STAGES if name in runtime.stages_ms]
    lines += [(w, 0.45, (0, 0, 255)) for w in (warnings or [])[-max_warnings:]]

    y = 22
    for text, scale, color in lines:
        cv2.putText(render, text, (12, y), cv2.FONT_HERSHEY_SIMPLEX, scale, color, 1, cv2.LINE_AA)
        y += int(30 * scale) + 6
    return render


def draw_tracks(frame: Any, tracks: List[TrackSnapshot], min_confidence: float = 0.5) -> Any:
    if cv2 is None:
        return frame
    render = frame.copy()
    h, w = render.shape[:2]

    for tr in tracks:
        x1, y1, x2, y2 = tr.bbox
        p1 = (int(x1 * w), int(y1 * h))
        p2 = (int(x2 * w), int(y2 * h))
        color = TRACK_COLOR if tr.confidence >= min_confidence else LOW_CONF_COLOR
        cv2.rectangle(render, p1, p2, color, 2)
        cv2.putText(render, f"ID {tr.track_id[:6]}", (p1[0], p1[1] - 6), cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 2)
        if tr.world_position is not None:
            cv2.putText(render, f"{tr.speed:.2f} m/s", (p1[0], p2[1] + 18), cv2.FONT_HERSHEY_SIMPLEX, 0.55, color, 2)

    return render


def draw_world_text(frame: Any, result: Any) -> Any:
    if cv2 is None or result is None:
        return frame
    located = sum(1 for t in result.tracks if t.world_position is not None)
    cv2.putText(
        frame,
        f"Tracks: {len(result.tracks)} located={located} det={'yes' if result.detection_ran else 'no'}",
        (20, frame.shape[0] - 20),
        cv2.FONT_HERSHEY_SIMPLEX,
        0.5,
        (255, 255, 0),
        1,
    )
    return frame
