"""
MAMACARE Exercise Service Models

Real-time pose-stream processing: keypoint smoothing, posture scoring,
hysteresis rep counting and session aggregation.
"""

from .keypoints import (
    Keypoint,
    KeypointName,
    Pose,
    make_pose,
)

from .smoothing import (
    KeypointSmoother,
    SmoothingState,
)

from .posture import (
    PostureScorer,
    PostureQuality,
)

from .rep_counter import (
    RepCounter,
    RepCounterState,
    RepPhase,
    RepDirection,
    ExerciseType,
    EXERCISE_PRESETS,
)

from .aggregator import (
    SessionAggregator,
    ExerciseSessionMetrics,
    ExerciseSessionRecord,
)

from .exercise_session import (
    ExerciseSession,
    ExerciseSessionHandler,
    FrameResult,
    PoseTrackingConfig,
    SessionState,
    get_session_handler,
)

__all__ = [
    # Keypoints
    "Keypoint",
    "KeypointName",
    "Pose",
    "make_pose",
    # Smoothing
    "KeypointSmoother",
    "SmoothingState",
    # Posture
    "PostureScorer",
    "PostureQuality",
    # Rep counting
    "RepCounter",
    "RepCounterState",
    "RepPhase",
    "RepDirection",
    "ExerciseType",
    "EXERCISE_PRESETS",
    # Aggregation
    "SessionAggregator",
    "ExerciseSessionMetrics",
    "ExerciseSessionRecord",
    # Exercise Session
    "ExerciseSession",
    "ExerciseSessionHandler",
    "FrameResult",
    "PoseTrackingConfig",
    "SessionState",
    "get_session_handler",
]
