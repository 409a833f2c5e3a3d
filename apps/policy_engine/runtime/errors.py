from typing import Optional


class ScalingError(Exception):
    """
    Base class for policy build and decision failures.

    `field` names the configuration field (e.g. "min-scale", "scale-to")
    the failure belongs to, so callers can report exactly what was wrong.
    """

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.message = message
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)


class ConfigError(ScalingError):
    """Malformed or incomplete scaling configuration (build time)."""


class EvalError(ScalingError):
    """A policy expression failed to evaluate or returned the wrong type (decision time)."""
