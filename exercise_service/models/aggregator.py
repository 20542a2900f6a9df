"""
MAMACARE Exercise Service - Session Aggregator

Running session metrics and the finalized record handed to storage.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.config import settings
from core.exceptions import ContractViolation
from .keypoints import Pose, check_cardinality

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExerciseSessionMetrics:
    """Finalized metrics for one exercise session."""
    exercise_type: str
    duration_seconds: float
    reps: int
    posture_score: Optional[float]  # None when no frames were processed
    accuracy: Optional[float]
    frames_processed: int
    notes: Optional[str] = None

    def to_record(self) -> "ExerciseSessionRecord":
        return ExerciseSessionRecord(
            exercise_type=self.exercise_type,
            duration=int(round(self.duration_seconds)),
            reps=self.reps,
            accuracy=None if self.accuracy is None else round(self.accuracy, 1),
            posture_score=None if self.posture_score is None else round(self.posture_score, 1),
            notes=self.notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ExerciseSessionRecord(BaseModel):
    """Persisted exercise-session shape."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    exercise_type: str = Field(alias="exerciseType")
    duration: int = Field(ge=0, description="seconds")
    reps: int = Field(ge=0)
    accuracy: Optional[float] = Field(default=None, ge=0, le=100)
    posture_score: Optional[float] = Field(default=None, alias="postureScore", ge=0, le=100)
    notes: Optional[str] = None

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class SessionAggregator:
    """
    Accumulates per-frame outputs for one session.

    Keeps an incremental mean of the posture score rather than a history.
    ``finalize`` closes the aggregator; frames after that are rejected.
    """

    def __init__(
        self,
        exercise_type: str = "general",
        notes: Optional[str] = None,
        good_posture_threshold: int = settings.GOOD_POSTURE_THRESHOLD,
    ):
        self.exercise_type = exercise_type
        self.notes = notes
        self.good_posture_threshold = good_posture_threshold

        self.frames_processed = 0
        self.reps = 0
        self._mean_score = 0.0
        self._good_frames = 0
        self._keypoint_count: Optional[int] = None
        self.first_timestamp: Optional[float] = None
        self.last_timestamp: Optional[float] = None
        self._final: Optional[ExerciseSessionMetrics] = None

    @property
    def is_closed(self) -> bool:
        return self._final is not None

    @property
    def mean_posture_score(self) -> Optional[float]:
        return self._mean_score if self.frames_processed else None

    def check_frame(self, pose: Pose, timestamp: float):
        """Validate a frame against the session contract without recording it."""
        if self.is_closed:
            raise ContractViolation("on_frame called after finalize")
        check_cardinality(pose, self._keypoint_count, "aggregator")
        if self.last_timestamp is not None and timestamp < self.last_timestamp:
            raise ContractViolation(
                f"frame timestamp {timestamp} is earlier than previous frame {self.last_timestamp}"
            )

    def on_frame(self, pose: Pose, posture_score: float, rep_event_occurred: bool, timestamp: float):
        self.check_frame(pose, timestamp)

        if self._keypoint_count is None:
            self._keypoint_count = len(pose)
            self.first_timestamp = timestamp
        self.last_timestamp = timestamp

        self.frames_processed += 1
        self._mean_score += (posture_score - self._mean_score) / self.frames_processed
        if posture_score >= self.good_posture_threshold:
            self._good_frames += 1
        if rep_event_occurred:
            self.reps += 1

    def finalize(self, timestamp: Optional[float] = None) -> ExerciseSessionMetrics:
        """
        Close the aggregator and return the session metrics.

        Args:
            timestamp: Session end time; defaults to the last frame's time
        """
        if self._final is not None:
            return self._final
        if timestamp is not None and self.last_timestamp is not None and timestamp < self.last_timestamp:
            raise ContractViolation(
                f"finalize timestamp {timestamp} is earlier than last frame {self.last_timestamp}"
            )

        if self.frames_processed == 0:
            duration = 0.0
            accuracy = None
        else:
            end = self.last_timestamp if timestamp is None else timestamp
            duration = end - self.first_timestamp
            accuracy = 100.0 * self._good_frames / self.frames_processed

        self._final = ExerciseSessionMetrics(
            exercise_type=self.exercise_type,
            duration_seconds=duration,
            reps=self.reps,
            posture_score=self.mean_posture_score,
            accuracy=accuracy,
            frames_processed=self.frames_processed,
            notes=self.notes,
        )
        logger.info(
            f"Session aggregate closed: {self.frames_processed} frames, "
            f"{self.reps} reps, {duration:.1f}s"
        )
        return self._final
