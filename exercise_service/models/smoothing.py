"""
MAMACARE Exercise Service - Keypoint Smoother

Confidence-gated exponential smoothing of keypoint positions.
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Optional

from core.config import settings
from core.exceptions import ContractViolation
from .keypoints import Pose, check_cardinality

logger = logging.getLogger(__name__)


@dataclass
class SmoothingState:
    """Previous smoothed pose for one session, plus the smoothing factor."""
    alpha: float = settings.SMOOTHING_ALPHA
    previous: Optional[Pose] = None

    def __post_init__(self):
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"alpha must be within [0, 1], got {self.alpha}")

    @property
    def keypoint_count(self) -> Optional[int]:
        return len(self.previous) if self.previous is not None else None


class KeypointSmoother:
    """
    Exponential smoothing of keypoint positions.

    smoothed = previous * alpha + current * (1 - alpha), applied per keypoint
    only when both the current and previous confidence exceed
    ``min_confidence``. Other keypoints pass through unchanged. Confidence is
    never smoothed.
    """

    def __init__(self, min_confidence: float = settings.MIN_KEYPOINT_CONFIDENCE):
        self.min_confidence = min_confidence

    def smooth(self, current: Pose, state: SmoothingState) -> Pose:
        """
        Smooth one frame and store the result as the next frame's reference.

        Args:
            current: Raw pose from the estimator
            state: Session smoothing state (mutated)

        Returns:
            Smoothed pose
        """
        previous = state.previous
        if previous is None:
            state.previous = current
            return current

        try:
            check_cardinality(current, len(previous), "smoother")
        except ContractViolation:
            logger.error(f"Keypoint count mismatch: previous={len(previous)}, current={len(current)}")
            raise

        alpha = state.alpha
        cur_xy = current.positions()
        prev_xy = previous.positions()

        blend = (current.confidences() > self.min_confidence) & (previous.confidences() > self.min_confidence)
        blended = prev_xy * alpha + cur_xy * (1.0 - alpha)
        smoothed_xy = np.where(blend[:, None], blended, cur_xy)

        smoothed = current.with_positions(smoothed_xy)
        state.previous = smoothed
        return smoothed
