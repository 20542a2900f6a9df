"""Shared fixtures: synthetic MoveNet poses."""

import pytest

from exercise_service.models import KeypointName, make_pose

NAMES = KeypointName.ordered()
LEFT_WRIST = NAMES.index("left_wrist")
RIGHT_WRIST = NAMES.index("right_wrist")


def build_pose(confidence=0.9, wrist_y=50.0, wrist_confidence=None, n=17, offset=0.0):
    """
    A 17-keypoint pose with every joint at (100 + i + offset, 100 + i + offset)
    and both wrists at height ``wrist_y``.
    """
    points = []
    for i in range(n):
        conf = confidence
        x = y = 100.0 + i + offset
        if i in (LEFT_WRIST, RIGHT_WRIST):
            y = wrist_y
            if wrist_confidence is not None:
                conf = wrist_confidence
        points.append((x, y, conf))
    return make_pose(points)


@pytest.fixture
def pose_factory():
    return build_pose
