# coding: utf-8

"""
Exceptions and warning categories raised during setup and event processing.
"""

from __future__ import annotations

__all__ = [
    "JetCalibError", "ConfigurationError", "ProviderInitializationError", "MissingInputError",
    "NumericWarning",
]


class JetCalibError(Exception):
    """
    Base class for all errors raised by jetcalib.
    """


class ConfigurationError(JetCalibError):
    """
    Raised at setup time when the configuration is inconsistent or lacks a required value. Fatal,
    no event is processed afterwards.
    """


class ProviderInitializationError(JetCalibError):
    """
    Raised at setup time when an external correction provider fails to load or configure itself.
    """

    def __init__(self, tool_name: str, msg: str):
        super().__init__(f"failed to initialize {tool_name}: {msg}")

        self.tool_name = tool_name


class MissingInputError(JetCalibError, KeyError):
    """
    Raised when an object required for processing an event is not present. Fatal for the event
    only.
    """

    def __str__(self) -> str:
        # KeyError quotes its argument by default
        return str(self.args[0]) if self.args else ""


class NumericWarning(UserWarning):
    """
    Warning category for degraded but usable numeric results of a correction provider, e.g.
    non-finite or out-of-range correction factors.
    """
