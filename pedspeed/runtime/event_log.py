import json
from pathlib import Path

from pedspeed.runtime.frame_result import FrameResult


class TrackEventLog:
    def __init__(self, run_dir: Path):
        self.log_path = Path(run_dir) / "track_events.jsonl"
        self.log_path.touch(exist_ok=True)
        self.count = 0

    def log(self, frame_idx: int, timestamp_s: float, event: str, track_id: str, details: dict):
        record = {
            "frame": frame_idx,
            "time_s": round(timestamp_s, 3),
            "event": event,
            "track_id": track_id,
            "details": details,
        }
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record) + "\n")
        self.count += 1

    def record(self, result: FrameResult) -> None:
        """Append spawn and expire events of one frame."""
        for tid in result.spawned_ids:
            self.log(result.frame_id, result.timestamp, "spawn", tid, {})
        for snap in result.expired:
            self.log(
                result.frame_id,
                result.timestamp,
                "expire",
                snap.track_id,
                {"speed": round(snap.speed, 3), "had_position": snap.world_position is not None},
            )
