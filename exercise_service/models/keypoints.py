"""
MAMACARE Exercise Service - Keypoint Data Model

Per-frame pose estimates as delivered by the pose-estimation collaborator
(MoveNet SinglePose). A Pose is an ordered, fixed-length tuple of keypoints;
index i refers to the same anatomical joint in every frame of a session.
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple
from enum import Enum

from core.exceptions import ContractViolation


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS AND DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class KeypointName(Enum):
    """MoveNet keypoints in model output order."""
    NOSE = "nose"
    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    LEFT_EAR = "left_ear"
    RIGHT_EAR = "right_ear"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"

    @classmethod
    def ordered(cls) -> Tuple[str, ...]:
        return tuple(member.value for member in cls)


@dataclass(frozen=True)
class Keypoint:
    """A single estimated landmark in frame pixel space."""
    name: str
    x: float
    y: float
    confidence: float


@dataclass(frozen=True)
class Pose:
    """All keypoints for one frame, in positional order."""
    keypoints: Tuple[Keypoint, ...]

    def __post_init__(self):
        # accept lists from callers but store an immutable tuple
        if not isinstance(self.keypoints, tuple):
            object.__setattr__(self, "keypoints", tuple(self.keypoints))

    def __len__(self) -> int:
        return len(self.keypoints)

    def __getitem__(self, index: int) -> Keypoint:
        return self.keypoints[index]

    def __iter__(self):
        return iter(self.keypoints)

    def index_of(self, name: str) -> int:
        """Positional index of a named keypoint."""
        for idx, kp in enumerate(self.keypoints):
            if kp.name == name:
                return idx
        raise ContractViolation(
            f"Keypoint '{name}' is not part of this pose "
            f"(available: {[kp.name for kp in self.keypoints]})"
        )

    def positions(self) -> np.ndarray:
        """(N, 2) array of x, y positions."""
        if not self.keypoints:
            return np.zeros((0, 2), dtype=float)
        return np.array([[kp.x, kp.y] for kp in self.keypoints], dtype=float)

    def confidences(self) -> np.ndarray:
        """(N,) array of confidences."""
        return np.array([kp.confidence for kp in self.keypoints], dtype=float)

    def with_positions(self, positions: np.ndarray) -> "Pose":
        """New pose with the same names and confidences at new positions."""
        if len(positions) != len(self.keypoints):
            raise ContractViolation(
                f"Expected {len(self.keypoints)} positions, got {len(positions)}"
            )
        return Pose(tuple(
            Keypoint(name=kp.name, x=float(xy[0]), y=float(xy[1]), confidence=kp.confidence)
            for kp, xy in zip(self.keypoints, positions)
        ))

    @classmethod
    def from_keypoints(cls, keypoints: Iterable[Dict[str, Any]]) -> "Pose":
        """
        Build a Pose from the estimator's JSON keypoints.

        Accepts ``name`` or ``identifier`` for the joint and ``score`` or
        ``confidence`` for the detection confidence. Unnamed keypoints take
        the MoveNet name for their position.
        """
        default_names = KeypointName.ordered()
        points = []
        for idx, raw in enumerate(keypoints):
            name = raw.get("name") or raw.get("identifier")
            if name is None:
                name = default_names[idx] if idx < len(default_names) else f"point_{idx}"
            confidence = raw.get("confidence", raw.get("score", 0.0))
            points.append(Keypoint(
                name=str(name),
                x=float(raw["x"]),
                y=float(raw["y"]),
                confidence=float(confidence if confidence is not None else 0.0),
            ))
        return cls(tuple(points))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "keypoints": [
                {"name": kp.name, "x": kp.x, "y": kp.y, "confidence": kp.confidence}
                for kp in self.keypoints
            ]
        }


def check_cardinality(pose: Pose, expected: Optional[int], context: str = "pose") -> None:
    """Raise ContractViolation if the pose size differs from the session's."""
    if expected is not None and len(pose) != expected:
        raise ContractViolation(
            f"{context}: keypoint count changed from {expected} to {len(pose)}; "
            "restart the session when the pose model changes"
        )


def make_pose(points: Sequence[Tuple[float, float, float]], names: Optional[Sequence[str]] = None) -> Pose:
    """Build a Pose from (x, y, confidence) triples, named in MoveNet order."""
    names = list(names) if names is not None else list(KeypointName.ordered())
    keypoints = []
    for idx, (x, y, confidence) in enumerate(points):
        name = names[idx] if idx < len(names) else f"point_{idx}"
        keypoints.append(Keypoint(name=name, x=float(x), y=float(y), confidence=float(confidence)))
    return Pose(tuple(keypoints))
