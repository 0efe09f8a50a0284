"""
Tracker registry: vision processor backends by id.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from trackers.base import VisionProcessorBase

_BUILTIN_TRACKERS = ("yolo", "hands")


def _tracker_class(tracker_id: str) -> type[VisionProcessorBase]:
    # imported lazily so the YOLO backend does not pull in mediapipe
    if tracker_id == "yolo":
        from trackers.yolo import YoloTracker

        return YoloTracker
    if tracker_id == "hands":
        from trackers.hands import HandTracker

        return HandTracker
    raise ValueError(f"Unknown tracker: {tracker_id}. Known: {list(_BUILTIN_TRACKERS)}")


def create_tracker(tracker_id: str, **kwargs: Any) -> VisionProcessorBase:
    """Instantiate the tracker backend registered under tracker_id."""
    return _tracker_class(tracker_id)(**kwargs)


__all__ = ["create_tracker"]
