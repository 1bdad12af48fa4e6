from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from pedspeed.utils.types import BBox

EPS = 1e-9


def box_area(box: BBox) -> float:
    x1, y1, x2, y2 = box
    return max(0.0, x2 - x1) * max(0.0, y2 - y1)


def iou(box_a: BBox, box_b: BBox) -> float:
    """
    Intersection over union of two (x1, y1, x2, y2) boxes.
    Disjoint or degenerate boxes give 0.0.
    """
    ix1 = max(box_a[0], box_b[0])
    iy1 = max(box_a[1], box_b[1])
    ix2 = min(box_a[2], box_b[2])
    iy2 = min(box_a[3], box_b[3])
    if ix2 <= ix1 or iy2 <= iy1:
        return 0.0

    inter = (ix2 - ix1) * (iy2 - iy1)
    union = box_area(box_a) + box_area(box_b) - inter
    if union <= EPS:
        return 0.0
    return float(min(1.0, inter / union))


def length(v) -> float:
    return float(np.linalg.norm(np.asarray(v, dtype=np.float64)))


def normalize(v) -> np.ndarray:
    """Unit vector along v; the zero vector maps to itself."""
    arr = np.asarray(v, dtype=np.float64)
    n = np.linalg.norm(arr)
    if not np.isfinite(n) or n < EPS:
        return np.zeros_like(arr)
    return arr / n


def is_finite(v) -> bool:
    return bool(np.all(np.isfinite(np.asarray(v, dtype=np.float64))))


def ema(prev, curr, alpha: float):
    """alpha weights the previous value, (1 - alpha) the new observation."""
    return alpha * prev + (1.0 - alpha) * curr


def arrow_vector(direction, speed: float, horizon_s: float = 0.5, min_norm: float = 1e-4) -> Optional[np.ndarray]:
    """
    Displacement covered in `horizon_s` along `direction` at `speed`.
    None when the direction is too short or non-finite to orient an arrow.
    """
    d = np.asarray(direction, dtype=np.float64)
    if not is_finite(d) or np.linalg.norm(d) <= min_norm or not np.isfinite(speed):
        return None
    out = normalize(d) * max(float(speed), 0.0) * horizon_s
    return out if is_finite(out) else None


def foot_point(box: BBox) -> Tuple[float, float]:
    # Bottom-centre of the box: where the person touches the ground.
    x1, _, x2, y2 = box
    return 0.5 * (x1 + x2), float(y2)


def clip_box(box: BBox) -> BBox:
    x1, y1, x2, y2 = (min(1.0, max(0.0, float(v))) for v in box)
    return x1, y1, x2, y2
