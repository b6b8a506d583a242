from __future__ import annotations


class LevelUpError(Exception):
    """Base error; the UI shows its message to the user."""


class ConfigError(LevelUpError):
    pass


class ValidationError(LevelUpError, ValueError):
    pass


class NotFoundError(LevelUpError, LookupError):
    pass


class InsufficientGoldError(LevelUpError):
    pass


class NoRestCreditsError(LevelUpError):
    pass


class LLMError(LevelUpError):
    pass
