"""Configuration error definitions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """Raised when a configuration value is present but unusable."""

    def __init__(self, message: str, *, setting: str | None = None) -> None:
        self.setting = setting
        super().__init__(message)


class MissingConfigurationError(ConfigurationError):
    """Raised when required settings are absent or blank."""

    def __init__(self, settings: Iterable[str]) -> None:
        self.settings = tuple(sorted(settings))
        super().__init__(f"Missing configuration for: {', '.join(self.settings)}")
