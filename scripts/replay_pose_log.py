#!/usr/bin/env python3
"""
Pose Log Replayer
=================
Replays a recorded pose stream through one exercise session and prints the
finalized session record.

Each input line is a JSON object produced by the pose-estimation client:

    {"timestamp": 1.25, "keypoints": [{"name": "nose", "x": 312.0, "y": 88.5, "score": 0.93}, ...]}

Frames without keypoints (no person detected) are skipped.

Usage Examples:
---------------
python scripts/replay_pose_log.py \
    --input recordings/arm_raise.jsonl \
    --exercise arm_raise \
    --upper 300 --lower 180 --cooldown 0.6

python scripts/replay_pose_log.py --input recordings/squat.jsonl --exercise squat --store --user-id 42
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterator, Tuple

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import settings
from core.exceptions import ContractViolation
from exercise_service.models import ExerciseSessionHandler, ExerciseType, Pose
from exercise_service.models.rep_counter import exercise_choices
from shared.storage import LocalSessionStorage
from shared.utils import setup_logger

logger = setup_logger("mamacare.replay", level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))


def iter_frames(path: Path) -> Iterator[Tuple[float, Pose]]:
    """Yield (timestamp, pose) pairs from a JSON-lines pose log."""
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            frame: Dict[str, Any] = json.loads(line)
            keypoints = frame.get("keypoints") or []
            if not keypoints:
                logger.debug(f"Line {line_no}: no pose, skipped")
                continue
            yield float(frame["timestamp"]), Pose.from_keypoints(keypoints)


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=f"{settings.APP_NAME}: replay a pose log through an exercise session")
    parser.add_argument('--input', '-i', type=Path, required=True, help='JSON-lines pose log')
    parser.add_argument('--exercise', type=str, default=ExerciseType.GENERAL.value,
                        choices=exercise_choices(), help='Exercise type')
    parser.add_argument('--alpha', type=float, default=None, help='Smoothing factor (0-1)')
    parser.add_argument('--min-confidence', type=float, default=None, help='Minimum keypoint confidence')
    parser.add_argument('--upper', type=float, default=None, help='Upper hysteresis threshold')
    parser.add_argument('--lower', type=float, default=None, help='Lower hysteresis threshold')
    parser.add_argument('--cooldown', type=float, default=None, help='Cooldown after a rep (seconds)')
    parser.add_argument('--notes', type=str, default=None, help='Notes stored with the record')
    parser.add_argument('--user-id', type=str, default="local", help='User the session belongs to')
    parser.add_argument('--store', action='store_true', help='Save the record to local storage')
    parser.add_argument('--media-path', type=str, default=settings.LOCAL_MEDIA_PATH,
                        help='Local storage root used with --store')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log every phase transition')
    return parser.parse_args()


def main():
    """Main entry point."""
    args = parse_arguments()
    if args.verbose:
        setup_logger("exercise_service", level=logging.DEBUG)

    if not args.input.exists():
        logger.error(f"Input not found: {args.input}")
        sys.exit(1)

    storage = LocalSessionStorage(args.media_path) if args.store else _NoopStorage()
    handler = ExerciseSessionHandler(storage=storage)
    session = handler.create_session(
        user_id=args.user_id,
        exercise_type=ExerciseType(args.exercise),
        notes=args.notes,
        on_rep_count=lambda count: logger.info(f"🔁 Rep {count}"),
        smoothing_alpha=args.alpha,
        min_confidence=args.min_confidence,
        upper_threshold=args.upper,
        lower_threshold=args.lower,
        cooldown_seconds=args.cooldown,
        expected_keypoints=settings.POSE_KEYPOINT_COUNT,
    )

    frames = 0
    try:
        for timestamp, pose in iter_frames(args.input):
            session.process_frame(pose, timestamp)
            frames += 1
    except ContractViolation as e:
        logger.error(f"Replay stopped after {frames} frames: {e}")

    result = handler.complete_session(session.session_id)
    print(json.dumps(result, indent=2))


class _NoopStorage:
    """Storage stand-in when --store is not given."""

    def save_exercise_session(self, user_id, session_id, record):
        return None


if __name__ == '__main__':
    main()
