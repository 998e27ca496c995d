"""Shared hand-pose builders for the test suite."""

import logging
import math

import pytest

from handtracker_core.geometry import Landmark
from handtracker_core.logger import BASE_LOGGER_NAME

# Finger base x positions; every finger points up the frame (-y)
_FINGER_X = {"thumb": 0.30, "index": 0.40, "middle": 0.50, "ring": 0.60, "pinky": 0.70}
_FINGER_START = {"thumb": 1, "index": 5, "middle": 9, "ring": 13, "pinky": 17}


def build_hand(flexion=None, center=(0.0, 0.0), thumb_tip=None):
    """
    Build 21 landmarks with a given flexion (degrees) per finger.

    Each finger is a vertical segment knuckle -> proximal joint, with the
    tip rotated away from the straight line by the requested flexion.
    """
    flexion = flexion or {}
    dx, dy = center
    points = [None] * 21
    points[0] = Landmark(0.50 + dx, 0.80 + dy, 0.0)

    for finger, base_x in _FINGER_X.items():
        start = _FINGER_START[finger]
        theta = math.radians(flexion.get(finger, 0.0))
        knuckle = (base_x, 0.60)
        joint = (base_x, 0.50)
        tip = (joint[0] + 0.2 * math.sin(theta), joint[1] - 0.2 * math.cos(theta))
        distal = ((joint[0] + tip[0]) / 2.0, (joint[1] + tip[1]) / 2.0)

        if finger == "thumb":
            # Thumb has CMC, MCP, IP, TIP
            chain = [(base_x, 0.70), knuckle, joint, tip]
        else:
            chain = [knuckle, joint, distal, tip]
        for offset, (x, y) in enumerate(chain):
            points[start + offset] = Landmark(x + dx, y + dy, 0.0)

    if thumb_tip is not None:
        points[4] = Landmark(thumb_tip[0] + dx, thumb_tip[1] + dy, 0.0)
    return points


def build_pinch_hand(distance):
    """Hand whose thumb tip sits `distance` to the left of the index tip."""
    hand = build_hand()
    index_tip = hand[8]
    return build_hand(thumb_tip=(index_tip.x - distance, index_tip.y))


def as_lists(hand):
    return [[lm.x, lm.y, lm.z] for lm in hand]


@pytest.fixture
def straight_hand():
    return build_hand()


@pytest.fixture
def hand_builder():
    return build_hand


@pytest.fixture
def pinch_hand():
    return build_pinch_hand


@pytest.fixture
def to_lists():
    return as_lists


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Drop handlers a test's setup_logging call attached to captured streams."""
    base = logging.getLogger(BASE_LOGGER_NAME)
    level = base.level
    yield
    for handler in list(base.handlers):
        handler.close()
    base.handlers.clear()
    base.setLevel(level)
