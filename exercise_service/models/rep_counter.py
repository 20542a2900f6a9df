"""
MAMACARE Exercise Service - Rep Counter

Hysteresis state machine turning a joint trajectory into discrete,
debounced repetition events.
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Any
from enum import Enum

from core.config import settings
from .keypoints import Pose, KeypointName

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS AND DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class RepPhase(Enum):
    """Rep counter phases."""
    IDLE = "idle"
    ABOVE_THRESHOLD = "above_threshold"
    BELOW_THRESHOLD = "below_threshold"
    COOLDOWN = "cooldown"


class RepDirection(Enum):
    """Which crossing completes a repetition."""
    DOWN = "down"  # above -> below
    UP = "up"      # below -> above


class ExerciseType(Enum):
    """Supported exercise types."""
    ARM_RAISE = "arm_raise"
    SQUAT = "squat"
    GLUTE_BRIDGE = "glute_bridge"
    WALL_PUSHUP = "wall_pushup"
    PELVIC_TILT = "pelvic_tilt"
    MARCHING = "marching"
    GENERAL = "general"


# Which joints drive the trajectory for each exercise. Thresholds and
# cooldown are always supplied by the caller.
EXERCISE_PRESETS: Dict[ExerciseType, Dict[str, Any]] = {
    ExerciseType.ARM_RAISE: {
        "tracked_joints": [KeypointName.LEFT_WRIST.value, KeypointName.RIGHT_WRIST.value],
        "axis": "y",
        "direction": RepDirection.DOWN,
    },
    ExerciseType.SQUAT: {
        "tracked_joints": [KeypointName.LEFT_HIP.value, KeypointName.RIGHT_HIP.value],
        "axis": "y",
        "direction": RepDirection.UP,
    },
    ExerciseType.GLUTE_BRIDGE: {
        "tracked_joints": [KeypointName.LEFT_HIP.value, KeypointName.RIGHT_HIP.value],
        "axis": "y",
        "direction": RepDirection.DOWN,
    },
    ExerciseType.WALL_PUSHUP: {
        "tracked_joints": [KeypointName.LEFT_SHOULDER.value, KeypointName.RIGHT_SHOULDER.value],
        "axis": "x",
        "direction": RepDirection.DOWN,
    },
    ExerciseType.PELVIC_TILT: {
        "tracked_joints": [KeypointName.LEFT_HIP.value, KeypointName.RIGHT_HIP.value],
        "axis": "y",
        "direction": RepDirection.DOWN,
    },
    ExerciseType.MARCHING: {
        "tracked_joints": [KeypointName.LEFT_KNEE.value, KeypointName.RIGHT_KNEE.value],
        "axis": "y",
        "direction": RepDirection.UP,
    },
    ExerciseType.GENERAL: {
        "tracked_joints": [KeypointName.LEFT_WRIST.value, KeypointName.RIGHT_WRIST.value],
        "axis": "y",
        "direction": RepDirection.DOWN,
    },
}


@dataclass
class RepCounterState:
    """Per-session rep counter state. Mutated only by RepCounter."""
    phase: RepPhase = RepPhase.IDLE
    last_transition_at: Optional[float] = None
    last_rep_at: Optional[float] = None
    count: int = 0
    last_reading: Optional[float] = None


# ═══════════════════════════════════════════════════════════════════════════════
# REP COUNTER
# ═══════════════════════════════════════════════════════════════════════════════

class RepCounter:
    """
    Counts repetitions from the mean position of the tracked joints.

    Two thresholds form a hysteresis band: the phase only changes when the
    reading reaches ``upper_threshold`` or ``lower_threshold``, so noise
    inside the band never toggles it. With direction ``down`` a rep is the
    move from ABOVE_THRESHOLD to BELOW_THRESHOLD; ``up`` is the reverse.
    After a rep the machine sits in COOLDOWN for ``cooldown_seconds``.
    """

    AXES = {"x": 0, "y": 1}

    def __init__(
        self,
        upper_threshold: float = settings.REP_UPPER_THRESHOLD,
        lower_threshold: float = settings.REP_LOWER_THRESHOLD,
        cooldown_seconds: float = settings.REP_COOLDOWN_SECONDS,
        direction: RepDirection = RepDirection(settings.REP_DIRECTION),
        tracked_joints: Sequence[str] = tuple(settings.REP_TRACKED_JOINTS),
        axis: str = settings.REP_TRAJECTORY_AXIS,
        min_confidence: float = settings.MIN_KEYPOINT_CONFIDENCE,
    ):
        if upper_threshold <= lower_threshold:
            raise ValueError(
                f"upper_threshold ({upper_threshold}) must be greater than "
                f"lower_threshold ({lower_threshold})"
            )
        if cooldown_seconds < 0:
            raise ValueError(f"cooldown_seconds must be >= 0, got {cooldown_seconds}")
        if axis not in self.AXES:
            raise ValueError(f"axis must be one of {list(self.AXES)}, got {axis!r}")
        if not tracked_joints:
            raise ValueError("at least one tracked joint is required")

        self.upper_threshold = upper_threshold
        self.lower_threshold = lower_threshold
        self.cooldown_seconds = cooldown_seconds
        self.direction = RepDirection(direction)
        self.tracked_joints: Tuple[str, ...] = tuple(tracked_joints)
        self.axis = axis
        self.min_confidence = min_confidence

        if self.direction == RepDirection.DOWN:
            self._armed_phase = RepPhase.ABOVE_THRESHOLD
            self._completed_phase = RepPhase.BELOW_THRESHOLD
        else:
            self._armed_phase = RepPhase.BELOW_THRESHOLD
            self._completed_phase = RepPhase.ABOVE_THRESHOLD

    # ───────────────────────────────────────────────────────────────────────────

    def reading(self, pose: Pose) -> Optional[float]:
        """
        Trajectory value for a pose, or None when any tracked joint is not
        confidently detected.
        """
        indices = [pose.index_of(name) for name in self.tracked_joints]
        tracked = [pose[idx] for idx in indices]
        if any(kp.confidence <= self.min_confidence for kp in tracked):
            return None
        coords = pose.positions()[indices, self.AXES[self.axis]]
        return float(np.mean(coords))

    def _is_above(self, value: float) -> bool:
        return value >= self.upper_threshold

    def _is_below(self, value: float) -> bool:
        return value <= self.lower_threshold

    def _reached_armed(self, value: float) -> bool:
        if self.direction == RepDirection.DOWN:
            return self._is_above(value)
        return self._is_below(value)

    def _reached_completed(self, value: float) -> bool:
        if self.direction == RepDirection.DOWN:
            return self._is_below(value)
        return self._is_above(value)

    def _transition(self, state: RepCounterState, phase: RepPhase, timestamp: float):
        if state.phase != phase:
            logger.debug(f"Rep phase {state.phase.value} -> {phase.value} at t={timestamp:.3f}")
            state.phase = phase
            state.last_transition_at = timestamp

    def _in_cooldown(self, state: RepCounterState, timestamp: float) -> bool:
        return (
            state.last_rep_at is not None
            and timestamp - state.last_rep_at < self.cooldown_seconds
        )

    def update(self, pose: Pose, timestamp: float, state: RepCounterState) -> bool:
        """
        Advance the state machine by one smoothed frame.

        Args:
            pose: Smoothed pose
            timestamp: Frame time in seconds
            state: Session rep counter state (mutated)

        Returns:
            True if this frame completed a repetition
        """
        value = self.reading(pose)
        if value is None:
            self._transition(state, RepPhase.IDLE, timestamp)
            return False

        state.last_reading = value

        if state.phase == RepPhase.COOLDOWN:
            if self._in_cooldown(state, timestamp):
                return False
            if self._reached_armed(value):
                self._transition(state, self._armed_phase, timestamp)
            else:
                self._transition(state, self._completed_phase, timestamp)
            return False

        if state.phase == RepPhase.IDLE:
            if self._is_above(value):
                self._transition(state, RepPhase.ABOVE_THRESHOLD, timestamp)
            elif self._is_below(value):
                self._transition(state, RepPhase.BELOW_THRESHOLD, timestamp)
            return False

        if state.phase == self._armed_phase and self._reached_completed(value):
            if self._in_cooldown(state, timestamp):
                # came back through IDLE before the cooldown ran out
                self._transition(state, self._completed_phase, timestamp)
                return False
            state.count += 1
            state.last_rep_at = timestamp
            self._transition(state, RepPhase.COOLDOWN, timestamp)
            logger.debug(f"Rep {state.count} counted at t={timestamp:.3f}")
            return True

        if state.phase == self._completed_phase and self._reached_armed(value):
            self._transition(state, self._armed_phase, timestamp)

        return False

    @classmethod
    def for_exercise(cls, exercise_type: ExerciseType, **overrides) -> "RepCounter":
        """Build a counter using the exercise's tracked joints, axis and direction."""
        params = dict(EXERCISE_PRESETS.get(exercise_type, EXERCISE_PRESETS[ExerciseType.GENERAL]))
        params.update(overrides)
        return cls(**params)


def exercise_choices() -> List[str]:
    return [e.value for e in ExerciseType]
