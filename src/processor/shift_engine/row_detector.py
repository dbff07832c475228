"""Schedule row detection in the right-hand "Working" label column."""

from dataclasses import dataclass, field
from typing import List

import numpy as np

from .config import (
    PROJECTION_THRESHOLD, DEFAULT_ROW_PX, MIN_ROW_DELTA_PX, PEAK_RATIO,
    MIN_PEAK_DISTANCE_PX, PEAK_SPACING_DIVISOR, SMOOTHING_DIVISOR,
    MIN_SMOOTHING_WINDOW, PROJECTION_OFFSET_RATIO, UNIFORM_PADDING,
)
from .models import DetectionMethod, OCRResult
from .preprocessor import normalize, threshold, to_grayscale
from .utils import count_working_tokens, looks_like_working, median


@dataclass
class RowDetection:
    """Row centers (pixels from the top of the list region) and how they were found."""
    centers: List[float] = field(default_factory=list)
    method: DetectionMethod = DetectionMethod.UNIFORM
    typical_row_px: float = DEFAULT_ROW_PX
    word_count: int = 0


class RowDetector:
    """
    Locates one vertical center per schedule row.

    Strategies, in order: "Working" word boxes, ink projection peaks of
    the column, then evenly spaced rows when only the text count is known.
    """

    def detect(self, column_ocr: OCRResult, column_image: np.ndarray, list_height: int) -> RowDetection:
        """
        Detect row centers.

        Args:
            column_ocr: OCR of the right column, with word boxes
            column_image: Right column crop of the detection layer
            list_height: Height of the list region in pixels

        Returns:
            RowDetection tagged with the strategy that produced it
        """
        word_centers = sorted(w.bbox.center_y for w in column_ocr.words if looks_like_working(w.text))
        expected = count_working_tokens(column_ocr.text)

        projected: List[float] = []
        if not word_centers and expected > 0:
            projected = [float(y) for y in detect_row_centers_by_projection(column_image, expected)]

        if word_centers:
            method, centers = DetectionMethod.WORDS, word_centers
        elif projected:
            method, centers = DetectionMethod.PROJECTION, projected
        else:
            method, centers = DetectionMethod.UNIFORM, uniform_row_centers(expected, list_height)

        typical = typical_row_height(centers)

        # projection peaks sit on the label, slightly above the true row center
        if method is DetectionMethod.PROJECTION:
            offset = round(typical * PROJECTION_OFFSET_RATIO)
            centers = [float(max(0, min(list_height - 1, y + offset))) for y in centers]

        return RowDetection(
            centers=centers,
            method=method,
            typical_row_px=typical,
            word_count=len(column_ocr.words),
        )


def typical_row_height(centers: List[float]) -> float:
    """Median spacing between consecutive centers, ignoring deltas of 20px or less."""
    deltas = [b - a for a, b in zip(centers, centers[1:]) if b - a > MIN_ROW_DELTA_PX]
    typical = median(deltas)
    return typical if typical is not None else DEFAULT_ROW_PX


def min_peak_distance(height: int, expected_count: int) -> int:
    return max(MIN_PEAK_DISTANCE_PX, int(height // (expected_count * PEAK_SPACING_DIVISOR)))


def detect_row_centers_by_projection(image: np.ndarray, expected_count: int) -> List[int]:
    """
    Find row centers as peaks of the horizontal ink projection.

    Args:
        image: Column image (any gray or color array)
        expected_count: Maximum number of rows to return

    Returns:
        Up to `expected_count` y positions, ascending, at least
        `min_peak_distance` apart
    """
    if expected_count <= 0 or image is None or image.size == 0:
        return []

    binary = threshold(normalize(to_grayscale(image)), PROJECTION_THRESHOLD)
    h = binary.shape[0]

    # 0=black, 255=white: score counts ink
    scores = (255 - binary.astype(np.float64)).sum(axis=1)

    window = max(MIN_SMOOTHING_WINDOW, h // SMOOTHING_DIVISOR)
    cumulative = np.concatenate(([0.0], np.cumsum(scores)))
    lo = np.clip(np.arange(h) - window, 0, h)
    hi = np.clip(np.arange(h) + window + 1, 0, h)
    smooth = (cumulative[hi] - cumulative[lo]) / (hi - lo)

    max_score = float(smooth.max()) if h else 0.0
    if max_score <= 0:
        return []

    min_peak = max_score * PEAK_RATIO
    candidates = []
    for y in range(2, h - 2):
        s = smooth[y]
        if s < min_peak:
            continue
        if s >= smooth[y - 1] and s >= smooth[y + 1] and s >= smooth[y - 2] and s >= smooth[y + 2]:
            candidates.append((y, float(s)))

    min_dist = min_peak_distance(h, expected_count)
    candidates.sort(key=lambda c: c[1], reverse=True)

    chosen: List[int] = []
    for y, _ in candidates:
        if any(abs(p - y) < min_dist for p in chosen):
            continue
        chosen.append(y)
        if len(chosen) >= expected_count:
            break

    return sorted(chosen)


def uniform_row_centers(count: int, list_height: int) -> List[float]:
    """Evenly spaced centers, keeping 3% of the list height clear at top and bottom."""
    if count <= 0:
        return []
    pad = list_height * UNIFORM_PADDING
    usable = max(1.0, list_height - 2 * pad)
    return [pad + (i + 0.5) / count * usable for i in range(count)]
