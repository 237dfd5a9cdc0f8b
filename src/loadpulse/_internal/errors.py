"""Custom exception hierarchy for loadpulse."""

from __future__ import annotations


class LoadPulseError(Exception):
    """Base exception for all loadpulse errors.

    Every custom exception raised by loadpulse inherits from this class,
    so callers can catch any loadpulse-specific failure with a single
    except clause.
    """


class ConfigError(LoadPulseError):
    """Raised when configuration is invalid or missing.

    Examples:
        - The configuration file cannot be read or is not valid JSON.
        - ``postRatio`` lies outside ``[0, 1]``.
        - An environment override has a non-numeric value.
    """


class EngineError(LoadPulseError):
    """Raised when the dispatch engine cannot run or fails mid-run.

    Examples:
        - ``Dispatcher.run`` receives parameters for the wrong mode.
        - An unexpected exception escapes the run loop.
    """
