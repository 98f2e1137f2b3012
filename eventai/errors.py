"""Custom exceptions for clearer failure handling."""

from __future__ import annotations


class EventAIError(Exception):
    """Base error for the event extension layer."""


class GameDataInvalidError(EventAIError):
    """Raised when a game data path is missing required files."""


class NoSuchItemError(EventAIError):
    """Raised when a treasure is requested by a name no item carries."""


class InvalidCommandError(EventAIError):
    """Raised for plugin commands or route scripts that cannot be parsed."""
