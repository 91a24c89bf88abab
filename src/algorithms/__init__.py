"""
Classification algorithms that turn tracks into drain events.

The tracking layer remains independent - classifiers do not modify track state.
"""

from .lanes import LaneClassifier, LaneClassifierConfig

__all__ = ["LaneClassifier", "LaneClassifierConfig"]
