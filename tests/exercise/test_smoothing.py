"""Tests for confidence-gated keypoint smoothing."""

import pytest

from core.exceptions import ContractViolation
from exercise_service.models import KeypointSmoother, SmoothingState


def test_first_frame_passes_through_and_initializes_state(pose_factory):
    smoother = KeypointSmoother(min_confidence=0.3)
    state = SmoothingState(alpha=0.5)
    pose = pose_factory(wrist_y=40.0)

    out = smoother.smooth(pose, state)

    assert out == pose
    assert state.previous == pose


def test_blends_confident_keypoints(pose_factory):
    smoother = KeypointSmoother(min_confidence=0.3)
    state = SmoothingState(alpha=0.25)
    smoother.smooth(pose_factory(wrist_y=0.0), state)

    out = smoother.smooth(pose_factory(wrist_y=100.0), state)

    # 0 * 0.25 + 100 * 0.75
    assert out.keypoints[9].y == pytest.approx(75.0)
    assert out.keypoints[10].y == pytest.approx(75.0)
    assert state.previous == out


def test_alpha_one_freezes_on_first_pose(pose_factory):
    smoother = KeypointSmoother(min_confidence=0.3)
    state = SmoothingState(alpha=1.0)
    first = pose_factory(wrist_y=10.0)
    smoother.smooth(first, state)

    for i in range(1, 20):
        out = smoother.smooth(pose_factory(wrist_y=10.0 + 7 * i, offset=3.0 * i), state)
        assert out.positions().tolist() == first.positions().tolist()


def test_alpha_zero_is_pass_through(pose_factory):
    smoother = KeypointSmoother(min_confidence=0.3)
    state = SmoothingState(alpha=0.0)
    smoother.smooth(pose_factory(wrist_y=10.0), state)

    current = pose_factory(wrist_y=65.0, offset=12.0)
    out = smoother.smooth(current, state)

    assert out == current


def test_low_current_confidence_passes_current_through(pose_factory):
    smoother = KeypointSmoother(min_confidence=0.3)
    state = SmoothingState(alpha=0.5)
    smoother.smooth(pose_factory(wrist_y=0.0), state)

    out = smoother.smooth(pose_factory(wrist_y=100.0, wrist_confidence=0.1), state)

    assert out.keypoints[9].y == 100.0
    assert out.keypoints[9].confidence == 0.1
    # other joints still blended (identical positions, so unchanged)
    assert out.keypoints[0].x == pytest.approx(100.0)


def test_low_previous_confidence_passes_current_through(pose_factory):
    smoother = KeypointSmoother(min_confidence=0.3)
    state = SmoothingState(alpha=0.5)
    smoother.smooth(pose_factory(wrist_y=0.0, wrist_confidence=0.3), state)

    out = smoother.smooth(pose_factory(wrist_y=100.0, wrist_confidence=0.9), state)

    # threshold must be exceeded, not met
    assert out.keypoints[10].y == 100.0


def test_confidence_is_never_smoothed(pose_factory):
    smoother = KeypointSmoother(min_confidence=0.3)
    state = SmoothingState(alpha=0.9)
    smoother.smooth(pose_factory(confidence=0.95), state)

    out = smoother.smooth(pose_factory(confidence=0.4), state)

    assert all(kp.confidence == 0.4 for kp in out)


def test_cardinality_mismatch_fails_fast_without_touching_state(pose_factory):
    smoother = KeypointSmoother()
    state = SmoothingState(alpha=0.5)
    first = pose_factory()
    smoother.smooth(first, state)

    with pytest.raises(ContractViolation, match="keypoint count"):
        smoother.smooth(pose_factory(n=13), state)

    assert state.previous is first


def test_alpha_out_of_range_rejected():
    with pytest.raises(ValueError):
        SmoothingState(alpha=1.5)


def test_state_cannot_be_rewound_mid_session(pose_factory):
    state = SmoothingState(alpha=0.5)
    KeypointSmoother().smooth(pose_factory(), state)

    assert not hasattr(state, "reset")
    assert state.keypoint_count == 17
