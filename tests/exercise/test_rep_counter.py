"""Tests for the hysteresis rep counter."""

import math

import pytest

from core.exceptions import ContractViolation
from exercise_service.models import (
    RepCounter,
    RepCounterState,
    RepPhase,
    RepDirection,
    ExerciseType,
    make_pose,
)


def feed(counter, state, pose_factory, values, start=0.0, step=0.1, **pose_kwargs):
    """Feed wrist heights at a fixed frame interval; return the rep events."""
    events = []
    for i, value in enumerate(values):
        events.append(counter.update(pose_factory(wrist_y=value, **pose_kwargs), start + i * step, state))
    return events


@pytest.fixture
def counter():
    return RepCounter(upper_threshold=80, lower_threshold=20, cooldown_seconds=0.5,
                      direction=RepDirection.DOWN, min_confidence=0.3)


def test_one_full_cycle_counts_once(counter, pose_factory):
    state = RepCounterState()

    events = feed(counter, state, pose_factory, [50, 85, 90, 60, 15, 10, 12])

    assert events.count(True) == 1
    assert state.count == 1
    assert events[4] is True


def test_enters_phases_from_idle(counter, pose_factory):
    state = RepCounterState()
    assert state.phase == RepPhase.IDLE

    counter.update(pose_factory(wrist_y=50), 0.0, state)
    assert state.phase == RepPhase.IDLE

    counter.update(pose_factory(wrist_y=90), 0.1, state)
    assert state.phase == RepPhase.ABOVE_THRESHOLD
    assert state.last_transition_at == 0.1

    counter.update(pose_factory(wrist_y=10), 0.2, state)
    assert state.phase == RepPhase.COOLDOWN


def test_noise_inside_band_never_counts(counter, pose_factory):
    state = RepCounterState()
    values = [50 + 29 * math.sin(i * 1.7) for i in range(200)]

    events = feed(counter, state, pose_factory, values)

    assert not any(events)
    assert state.phase == RepPhase.IDLE


def test_flutter_around_midline_after_arming_never_counts(counter, pose_factory):
    state = RepCounterState()
    # armed above, then jitter across the 50 midline without reaching 20
    values = [90] + [50 + (-1) ** i * 25 for i in range(100)]

    events = feed(counter, state, pose_factory, values)

    assert not any(events)
    assert state.phase == RepPhase.ABOVE_THRESHOLD


def test_many_cycles_count_each_once(counter, pose_factory):
    state = RepCounterState()
    cycle = [90, 90, 50, 10, 10, 10, 10, 10, 10, 50]
    # 10 frames at 0.1s per cycle, cooldown 0.5s

    events = feed(counter, state, pose_factory, cycle * 5)

    assert events.count(True) == 5
    assert state.count == 5


def test_cooldown_merges_cycles_closer_than_cooldown(pose_factory):
    counter = RepCounter(upper_threshold=80, lower_threshold=20, cooldown_seconds=1.0)
    state = RepCounterState()

    # two full cycles within 0.3s, then stay low past the cooldown
    events = feed(counter, state, pose_factory, [90, 10, 90, 10, 10, 10, 10, 10, 10, 10, 10, 10, 10])

    assert events.count(True) == 1
    assert state.count == 1
    assert state.phase == RepPhase.BELOW_THRESHOLD


def test_cooldown_resumes_armed_when_still_above(pose_factory):
    counter = RepCounter(upper_threshold=80, lower_threshold=20, cooldown_seconds=0.3)
    state = RepCounterState()

    feed(counter, state, pose_factory, [90, 10, 90, 90, 90, 90])
    assert state.phase == RepPhase.ABOVE_THRESHOLD

    assert counter.update(pose_factory(wrist_y=10), 0.6, state) is True
    assert state.count == 2


def test_low_confidence_enters_idle_and_freezes_count(counter, pose_factory):
    state = RepCounterState()
    feed(counter, state, pose_factory, [90, 10])
    assert state.count == 1

    events = feed(counter, state, pose_factory, [90, 10, 90, 10], start=1.0, wrist_confidence=0.2)

    assert not any(events)
    assert state.phase == RepPhase.IDLE
    assert state.count == 1


def test_one_untracked_wrist_blocks_reading(counter, pose_factory):
    pose = pose_factory(wrist_y=90)
    low = [(kp.x, kp.y, 0.1 if kp.name == "right_wrist" else kp.confidence) for kp in pose]

    assert counter.reading(make_pose(low)) is None
    assert counter.reading(pose) == pytest.approx(90.0)


def test_idle_detour_does_not_bypass_cooldown(pose_factory):
    counter = RepCounter(upper_threshold=80, lower_threshold=20, cooldown_seconds=1.0)
    state = RepCounterState()

    assert feed(counter, state, pose_factory, [90, 10]) == [False, True]
    counter.update(pose_factory(wrist_y=50, wrist_confidence=0.0), 0.2, state)
    assert state.phase == RepPhase.IDLE

    events = feed(counter, state, pose_factory, [90, 10], start=0.3)

    assert events == [False, False]
    assert state.count == 1
    assert state.phase == RepPhase.BELOW_THRESHOLD


def test_direction_up_counts_below_to_above(pose_factory):
    counter = RepCounter(upper_threshold=80, lower_threshold=20, cooldown_seconds=0.2,
                         direction=RepDirection.UP)
    state = RepCounterState()

    events = feed(counter, state, pose_factory, [90, 10, 50, 90, 90, 90, 10, 90])

    assert events == [False, False, False, True, False, False, False, True]


def test_tracked_joint_missing_is_contract_violation(counter):
    pose = make_pose([(0, 0, 0.9)] * 5)

    with pytest.raises(ContractViolation):
        counter.update(pose, 0.0, RepCounterState())


def test_thresholds_must_leave_a_band():
    with pytest.raises(ValueError):
        RepCounter(upper_threshold=20, lower_threshold=20)


def test_for_exercise_uses_preset_joints():
    counter = RepCounter.for_exercise(ExerciseType.SQUAT, upper_threshold=300, lower_threshold=200)

    assert counter.tracked_joints == ("left_hip", "right_hip")
    assert counter.direction == RepDirection.UP
    assert counter.upper_threshold == 300


def test_counter_is_deterministic(counter, pose_factory):
    values = [50, 90, 10, 10, 10, 10, 10, 10, 90, 10] * 3
    first = feed(counter, RepCounterState(), pose_factory, values)
    second = feed(counter, RepCounterState(), pose_factory, values)

    assert first == second


def test_state_cannot_be_rewound_mid_session():
    assert not hasattr(RepCounterState(), "reset")
