"""
Exception types raised by the drain monitor.
"""

from __future__ import annotations


class DrainMonitorError(Exception):
    """Base class for drain monitor errors."""


class ConfigurationError(DrainMonitorError):
    """
    Configuration or calibration is missing or inconsistent.

    Fatal for the current run: the loop is never started.
    """


class InvalidCalibration(ConfigurationError):
    """The calibration quad cannot produce a valid perspective transform."""


class ProfileNotFound(ConfigurationError):
    """A named calibration profile has no file in the profile store."""
