from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

CLAIM_POLICIES = ("exclusive", "overwrite")


def load_yaml(path: str | Path) -> Dict[str, Any]:
    """Top-level YAML mapping of `path`; an empty file gives {}."""
    config_path = Path(path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Config not found: {config_path.resolve()}")
    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: expected a mapping at the top level, got {type(data).__name__}")
    return data


def get(cfg: Dict[str, Any], key: str, default: Any = None) -> Any:
    """`get(cfg, "ground_plane.pitch_deg", 12.0)`; missing or non-mapping steps give default."""
    node: Any = cfg
    for part in key.split("."):
        try:
            node = node[part]
        except (KeyError, TypeError):
            return default
    return node


@dataclass
class EngineConfig:
    """Tunables of the tracking engine (the `tracking` section of the YAML config)."""

    detection_interval: int = 5
    target_label: str = "person"
    min_confidence: float = 0.5
    match_threshold: float = 0.5
    claim_policy: str = "exclusive"
    smoothing_alpha: float = 0.7
    expiry_window_s: float = 1.0

    def __post_init__(self) -> None:
        if self.detection_interval < 1:
            raise ValueError(f"detection_interval must be >= 1, got {self.detection_interval}")
        for name in ("min_confidence", "match_threshold", "smoothing_alpha"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.expiry_window_s <= 0:
            raise ValueError(f"expiry_window_s must be > 0, got {self.expiry_window_s}")
        if self.claim_policy not in CLAIM_POLICIES:
            raise ValueError(f"claim_policy must be one of {CLAIM_POLICIES}, got {self.claim_policy!r}")

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "EngineConfig":
        trk = cfg.get("tracking", {}) or {}
        return cls(
            detection_interval=int(trk.get("detection_interval", 5)),
            target_label=str(trk.get("target_label", "person")),
            min_confidence=float(trk.get("min_confidence", 0.5)),
            match_threshold=float(trk.get("match_threshold", 0.5)),
            claim_policy=str(trk.get("claim_policy", "exclusive")),
            smoothing_alpha=float(trk.get("smoothing_alpha", 0.7)),
            expiry_window_s=float(trk.get("expiry_window_s", 1.0)),
        )
