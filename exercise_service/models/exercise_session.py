"""
MAMACARE Exercise Service - Exercise Session Handler

Runs the per-frame pose pipeline for exercise sessions:
raw pose -> smoothing -> (posture score, rep counting) -> session metrics.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from core.config import settings
from core.exceptions import ContractViolation
from shared.utils import error_response, log_execution_time
from .keypoints import Pose, check_cardinality
from .smoothing import KeypointSmoother, SmoothingState
from .posture import PostureScorer
from .rep_counter import (
    RepCounter,
    RepCounterState,
    RepDirection,
    ExerciseType,
    EXERCISE_PRESETS,
)
from .aggregator import SessionAggregator, ExerciseSessionMetrics, ExerciseSessionRecord

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Exercise session states."""
    ACTIVE = "active"
    COMPLETED = "completed"
    ABORTED = "aborted"


class PoseTrackingConfig(BaseModel):
    """Per-session tuning for smoothing and rep counting."""
    smoothing_alpha: float = Field(default=settings.SMOOTHING_ALPHA, ge=0.0, le=1.0)
    min_confidence: float = Field(default=settings.MIN_KEYPOINT_CONFIDENCE, ge=0.0, le=1.0)
    upper_threshold: float = settings.REP_UPPER_THRESHOLD
    lower_threshold: float = settings.REP_LOWER_THRESHOLD
    cooldown_seconds: float = Field(default=settings.REP_COOLDOWN_SECONDS, ge=0.0)
    direction: RepDirection = RepDirection(settings.REP_DIRECTION)
    tracked_joints: List[str] = Field(default_factory=lambda: list(settings.REP_TRACKED_JOINTS), min_length=1)
    axis: str = Field(default=settings.REP_TRAJECTORY_AXIS, pattern="^[xy]$")
    good_posture_threshold: int = Field(default=settings.GOOD_POSTURE_THRESHOLD, ge=0, le=100)
    expected_keypoints: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _check_hysteresis(self) -> "PoseTrackingConfig":
        if self.upper_threshold <= self.lower_threshold:
            raise ValueError("upper_threshold must be greater than lower_threshold")
        return self

    @classmethod
    def for_exercise(cls, exercise_type: ExerciseType, **overrides) -> "PoseTrackingConfig":
        """Settings defaults, then the exercise preset, then caller overrides."""
        params: Dict[str, Any] = dict(EXERCISE_PRESETS.get(exercise_type, {}))
        params.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**params)


@dataclass
class FrameResult:
    """Outputs of one processed frame."""
    posture_score: int
    rep_completed: bool
    rep_count: int
    phase: str
    smoothed_pose: Pose
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "posture_score": self.posture_score,
            "posture_quality": PostureScorer.quality(self.posture_score).value,
            "rep_completed": self.rep_completed,
            "rep_count": self.rep_count,
            "phase": self.phase,
            "timestamp": self.timestamp,
        }


class ExerciseSession:
    """
    One exercise session and all of its pipeline state.

    Frames must arrive in order, one at a time. Nothing here is shared
    between sessions.
    """

    def __init__(
        self,
        exercise_type: ExerciseType = ExerciseType.GENERAL,
        config: Optional[PoseTrackingConfig] = None,
        user_id: Optional[str] = None,
        notes: Optional[str] = None,
        session_id: Optional[str] = None,
        on_posture_update: Optional[Callable[[int], None]] = None,
        on_rep_count: Optional[Callable[[int], None]] = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())[:8]
        self.user_id = user_id
        self.exercise_type = ExerciseType(exercise_type)
        self.config = config or PoseTrackingConfig.for_exercise(self.exercise_type)
        self.state = SessionState.ACTIVE
        self.on_posture_update = on_posture_update
        self.on_rep_count = on_rep_count

        self.smoother = KeypointSmoother(min_confidence=self.config.min_confidence)
        self.smoothing_state = SmoothingState(alpha=self.config.smoothing_alpha)
        self.rep_counter = RepCounter(
            upper_threshold=self.config.upper_threshold,
            lower_threshold=self.config.lower_threshold,
            cooldown_seconds=self.config.cooldown_seconds,
            direction=self.config.direction,
            tracked_joints=self.config.tracked_joints,
            axis=self.config.axis,
            min_confidence=self.config.min_confidence,
        )
        self.rep_state = RepCounterState()
        self.aggregator = SessionAggregator(
            exercise_type=self.exercise_type.value,
            notes=notes,
            good_posture_threshold=self.config.good_posture_threshold,
        )
        self.last_result: Optional[FrameResult] = None

        logger.info(
            f"🏃 Session {self.session_id} started: {self.exercise_type.value} "
            f"(alpha={self.config.smoothing_alpha}, band={self.config.lower_threshold}-"
            f"{self.config.upper_threshold}, cooldown={self.config.cooldown_seconds}s)"
        )

    @property
    def rep_count(self) -> int:
        return self.rep_state.count

    def _abort(self, error: ContractViolation):
        self.state = SessionState.ABORTED
        logger.error(f"❌ Session {self.session_id} aborted: {error}")

    @log_execution_time
    def process_frame(self, pose: Pose, timestamp: float) -> FrameResult:
        """
        Run one raw pose through the pipeline.

        Raises:
            ContractViolation: cardinality change, out-of-order timestamp, or
                the session is no longer active
        """
        if self.state != SessionState.ACTIVE:
            raise ContractViolation(f"session is {self.state.value}", self.session_id)

        # validate everything before any state is touched
        try:
            check_cardinality(pose, self.config.expected_keypoints, "session")
            self.aggregator.check_frame(pose, timestamp)
            check_cardinality(pose, self.smoothing_state.keypoint_count, "session")
            for name in self.config.tracked_joints:
                pose.index_of(name)
        except ContractViolation as e:
            self._abort(e)
            raise

        smoothed = self.smoother.smooth(pose, self.smoothing_state)
        score = PostureScorer.score(smoothed)
        rep_completed = self.rep_counter.update(smoothed, timestamp, self.rep_state)
        self.aggregator.on_frame(smoothed, score, rep_completed, timestamp)

        result = FrameResult(
            posture_score=score,
            rep_completed=rep_completed,
            rep_count=self.rep_state.count,
            phase=self.rep_state.phase.value,
            smoothed_pose=smoothed,
            timestamp=timestamp,
        )
        self.last_result = result

        if self.on_posture_update is not None:
            self.on_posture_update(score)
        if rep_completed and self.on_rep_count is not None:
            self.on_rep_count(self.rep_state.count)

        return result

    def finalize(self, timestamp: Optional[float] = None) -> ExerciseSessionMetrics:
        """Close the session. Safe at any frame boundary, including after an abort."""
        metrics = self.aggregator.finalize(timestamp)
        if self.state == SessionState.ACTIVE:
            self.state = SessionState.COMPLETED
        logger.info(
            f"✅ Session {self.session_id} finalized: {metrics.reps} reps, "
            f"posture={metrics.posture_score}, duration={metrics.duration_seconds:.1f}s"
        )
        return metrics

    def to_record(self, timestamp: Optional[float] = None) -> ExerciseSessionRecord:
        return self.finalize(timestamp).to_record()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        mean_score = self.aggregator.mean_posture_score
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "exercise_type": self.exercise_type.value,
            "state": self.state.value,
            "phase": self.rep_state.phase.value,
            "rep_count": self.rep_state.count,
            "frames_processed": self.aggregator.frames_processed,
            "avg_posture_score": None if mean_score is None else round(mean_score, 1),
            "last_posture_score": self.last_result.posture_score if self.last_result else None,
        }


class ExerciseSessionHandler:
    """
    Registry of independent exercise sessions.

    Finalized records are handed to the storage collaborator, any object
    with ``save_exercise_session(user_id, session_id, record)``.
    """

    def __init__(self, storage=None):
        """
        Args:
            storage: Storage collaborator (uses the local store if None)
        """
        self._storage = storage
        self.active_sessions: Dict[str, ExerciseSession] = {}

    @property
    def storage(self):
        if self._storage is None:
            from shared.storage import get_storage
            self._storage = get_storage()
        return self._storage

    def create_session(
        self,
        user_id: str,
        exercise_type: ExerciseType,
        notes: Optional[str] = None,
        on_posture_update: Optional[Callable[[int], None]] = None,
        on_rep_count: Optional[Callable[[int], None]] = None,
        **overrides
    ) -> ExerciseSession:
        """
        Create and start a new exercise session.

        Args:
            user_id: User ID
            exercise_type: Type of exercise
            notes: Free-text notes stored with the record
            **overrides: PoseTrackingConfig fields supplied by the caller
        """
        exercise_type = ExerciseType(exercise_type)
        config = PoseTrackingConfig.for_exercise(exercise_type, **overrides)
        session = ExerciseSession(
            exercise_type=exercise_type,
            config=config,
            user_id=user_id,
            notes=notes,
            on_posture_update=on_posture_update,
            on_rep_count=on_rep_count,
        )
        self.active_sessions[session.session_id] = session
        return session

    def process_frame(self, session_id: str, pose: Pose, timestamp: float) -> Dict[str, Any]:
        """
        Process one pose for a session.

        Returns:
            Real-time feedback dict, or an error dict for unknown/inactive sessions
        """
        session = self.active_sessions.get(session_id)
        if not session:
            return error_response("Session not found", "SESSION_NOT_FOUND", {"session_id": session_id})

        if session.state != SessionState.ACTIVE:
            return error_response(
                "Session not active",
                "SESSION_NOT_ACTIVE",
                {"session_id": session_id, "state": session.state.value}
            )

        result = session.process_frame(pose, timestamp)
        return {"session_id": session_id, **result.to_dict()}

    def complete_session(self, session_id: str, timestamp: Optional[float] = None) -> Dict[str, Any]:
        """
        Finalize a session and hand its record to storage.

        Returns the stored record.
        """
        session = self.active_sessions.get(session_id)
        if not session:
            return error_response("Session not found", "SESSION_NOT_FOUND", {"session_id": session_id})

        metrics = session.finalize(timestamp)
        record = metrics.to_record().to_storage()
        self.storage.save_exercise_session(session.user_id, session.session_id, record)

        return {
            "status": session.state.value,
            "session_id": session_id,
            "user_id": session.user_id,
            "frames_processed": metrics.frames_processed,
            "record": record,
        }

    def get_session(self, session_id: str) -> Optional[ExerciseSession]:
        """Get session by ID."""
        return self.active_sessions.get(session_id)

    def get_session_status(self, session_id: str) -> Dict[str, Any]:
        """Get current session status."""
        session = self.active_sessions.get(session_id)
        if not session:
            return error_response("Session not found", "SESSION_NOT_FOUND", {"session_id": session_id})
        return session.to_dict()

    def cleanup_session(self, session_id: str):
        """Remove session from active sessions."""
        if session_id in self.active_sessions:
            del self.active_sessions[session_id]


# ═══════════════════════════════════════════════════════════════════════════════
# MODULE-LEVEL SINGLETON
# ═══════════════════════════════════════════════════════════════════════════════

_handler_instance: Optional[ExerciseSessionHandler] = None


def get_session_handler() -> ExerciseSessionHandler:
    """Get or create the global session handler instance."""
    global _handler_instance
    if _handler_instance is None:
        _handler_instance = ExerciseSessionHandler()
    return _handler_instance
