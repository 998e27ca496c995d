#!/usr/bin/env python3
"""
Landmark Replay

Runs a recording of detector landmarks through the hand tracking pipeline
and prints the confirmed state changes.

Recordings are JSON Lines, one frame per line:
    {"timestamp": 1033.0, "hands": [[[x, y, z], ... 21 points], null]}

Usage:
    handtracker-replay recording.jsonl [--settings <path>] [--debug]

Exit Codes:
    0 - Success
    1 - Settings error
    2 - Input error
    3 - Runtime error
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Iterator, Optional

from .config import (
    EXIT_SUCCESS,
    EXIT_SETTINGS_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_RUNTIME_ERROR,
    PipelineConfig,
)
from .logger import LOG_LEVELS, setup_logging
from .pipeline import FrameResult, HandTrackingPipeline, StateChangeEvent
from .settings_loader import SettingsLoadError, load_settings


class RecordingError(Exception):
    """Raised when a recording line cannot be parsed."""
    pass


def read_recording(path: Path) -> Iterator[tuple[float, list]]:
    """
    Yield (timestamp_ms, hands) per frame of a JSON Lines recording.

    Raises:
        RecordingError: On unreadable files or malformed lines.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    frame = json.loads(line)
                    timestamp = float(frame["timestamp"])
                    hands = frame.get("hands") or []
                except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                    raise RecordingError(f"{path}:{line_number}: invalid frame: {e}") from e
                if not isinstance(hands, list):
                    raise RecordingError(f"{path}:{line_number}: 'hands' must be a list")
                yield timestamp, hands
    except OSError as e:
        raise RecordingError(f"Cannot read recording: {e}") from e


def format_event(event: StateChangeEvent) -> str:
    measurement = "-" if event.measurement is None else f"{event.measurement:.3f}"
    return (
        f"{event.timestamp_ms:10.1f} ms  hand {event.hand_slot}  "
        f"{event.classifier:<6} {event.previous.value} -> {event.current.value} "
        f"({measurement})"
    )


class ReplaySummary:
    """Counts collected while replaying."""

    def __init__(self):
        self.frames = 0
        self.events = 0
        self.full_frames = 0
        self.region_frames = 0

    def on_frame(self, frame: FrameResult) -> None:
        self.frames += 1
        for hand in frame.hands.values():
            if hand.process_full_frame:
                self.full_frames += 1
            else:
                self.region_frames += 1

    def on_event(self, event: StateChangeEvent) -> None:
        self.events += 1
        print(format_event(event))


def replay(path: Path, config: Optional[PipelineConfig] = None) -> ReplaySummary:
    """
    Replay a recording through a fresh pipeline.

    Returns:
        Summary counts.

    Raises:
        RecordingError: If the recording is malformed.
    """
    pipeline = HandTrackingPipeline(config)
    summary = ReplaySummary()
    pipeline.set_callbacks(on_state_change=summary.on_event, on_frame=summary.on_frame)

    for timestamp, hands in read_recording(path):
        try:
            pipeline.process_frame(hands, timestamp)
        except (ValueError, TypeError, KeyError) as e:
            raise RecordingError(f"Invalid landmarks at {timestamp} ms: {e}") from e

    return summary


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Replay recorded hand landmarks through the tracking pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0  Success
  1  Settings error (file not found, invalid JSON, rejected value)
  2  Input error (recording missing or malformed)
  3  Runtime error (unexpected error)

Examples:
  handtracker-replay session.jsonl
  handtracker-replay session.jsonl --settings settings.json --debug
"""
    )

    parser.add_argument(
        "recording",
        help="Path to JSON Lines landmark recording"
    )

    parser.add_argument(
        "--settings", "-s",
        default=None,
        help="Path to JSON settings file"
    )

    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Console log level (overrides --debug)"
    )

    parser.add_argument(
        "--log-file",
        action="store_true",
        help="Also write logs to the rotating log file"
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code.
    """
    args = parse_args(argv)

    logger = setup_logging(
        debug=args.debug,
        log_to_file=args.log_file,
        level=args.log_level
    )
    logger.info("Landmark replay starting...")

    config: Optional[PipelineConfig] = None
    if args.settings:
        try:
            config = load_settings(args.settings)
        except SettingsLoadError as e:
            logger.error(f"Failed to load settings: {e}")
            return EXIT_SETTINGS_ERROR

    recording = Path(args.recording)
    if not recording.is_file():
        logger.error(f"Recording not found: {recording}")
        return EXIT_INPUT_ERROR

    try:
        summary = replay(recording, config)
    except RecordingError as e:
        logger.error(f"Invalid recording: {e}")
        return EXIT_INPUT_ERROR
    except Exception as e:
        logger.exception(f"Runtime error: {e}")
        return EXIT_RUNTIME_ERROR

    logger.info(
        f"Replayed {summary.frames} frames: {summary.events} state changes, "
        f"{summary.full_frames} full-frame / {summary.region_frames} region passes"
    )
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
