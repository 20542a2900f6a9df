"""
MAMACARE Exercise Service - Posture Scorer

Posture quality from detection confidence.
"""

import math
import numpy as np
from enum import Enum

from .keypoints import Pose


class PostureQuality(Enum):
    """Posture quality levels."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class PostureScorer:
    """Scores a pose 0-100 as the rounded mean keypoint confidence."""

    @staticmethod
    def score(pose: Pose) -> int:
        if len(pose) == 0:
            return 0
        confidences = np.clip(pose.confidences(), 0.0, 1.0)
        # half-up, like Math.round on the client
        value = math.floor(float(np.mean(confidences)) * 100 + 0.5)
        return max(0, min(100, value))

    @staticmethod
    def quality(score: float) -> PostureQuality:
        if score >= 90:
            return PostureQuality.EXCELLENT
        elif score >= 75:
            return PostureQuality.GOOD
        elif score >= 50:
            return PostureQuality.FAIR
        return PostureQuality.POOR
