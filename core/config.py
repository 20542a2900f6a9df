"""
MAMACARE Configuration

Environment variables and application settings.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "MAMACARE"
    LOG_LEVEL: str = "INFO"

    # Local Storage (external storage fallback)
    LOCAL_MEDIA_PATH: str = "media"

    # Pose input (MoveNet SinglePose emits 17 keypoints)
    POSE_KEYPOINT_COUNT: int = 17

    # Keypoint smoothing
    SMOOTHING_ALPHA: float = 0.4
    MIN_KEYPOINT_CONFIDENCE: float = 0.3

    # Rep counting
    REP_UPPER_THRESHOLD: float = 80.0
    REP_LOWER_THRESHOLD: float = 20.0
    REP_COOLDOWN_SECONDS: float = 0.5
    REP_DIRECTION: str = "down"
    REP_TRACKED_JOINTS: List[str] = ["left_wrist", "right_wrist"]
    REP_TRAJECTORY_AXIS: str = "y"

    # Session metrics
    GOOD_POSTURE_THRESHOLD: int = 70

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
