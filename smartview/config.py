"""
INI file configuration.

Example::

    [smartview]
    url = http://hyperion:19000/hfmadf/officeprovider
    user = admin
    password = secret
    server = HFMCluster
    application = COMMA
    cube = COMMA
    timeout = 30

    [preferences]
    suppress_missing = yes
    member_display = description

    [logging]
    level = info
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .compat import ConfigParser
from .errors import ConfigurationError
from .logging import create_logger
from .query.preferences import Preferences
from .session import SmartView
from .transport import DEFAULT_TIMEOUT, HTTPTransport

__all__ = ["ConnectionSettings", "load_config", "read_preferences"]

SECTION = "smartview"


class ConnectionSettings(BaseModel):
    """Provider connection settings read from a configuration file."""

    model_config = ConfigDict(extra="forbid")

    url: str = Field(..., min_length=1, description="Provider servlet URL")
    user: str | None = None
    password: str | None = None
    sso: str | None = None
    server: str | None = None
    application: str | None = None
    cube: str | None = None
    timeout: float = Field(DEFAULT_TIMEOUT, gt=0)
    preferences: Preferences = Field(default_factory=Preferences)
    log_level: str | None = None
    log_path: str | None = None

    def create_session(self, logger=None) -> SmartView:
        """Create a `SmartView` session for these settings. The session is
        not connected yet."""
        if logger is None and (self.log_level or self.log_path):
            logger = create_logger(level=self.log_level, path=self.log_path)

        return SmartView(
            self.url,
            transport=HTTPTransport(timeout=self.timeout),
            preferences=self.preferences.model_copy(),
            logger=logger,
        )

    def credentials(self) -> tuple[str, ...]:
        """Arguments for `SmartView.connect`: the SSO token, or the user and
        password."""
        if self.sso:
            return (self.sso,)
        if self.user and self.password is not None:
            return (self.user, self.password)
        raise ConfigurationError("No SSO token or user and password configured")


def read_preferences(parser: ConfigParser, section: str = "preferences") -> Preferences:
    """Read retrieval preferences from `section` of `parser`."""
    if not parser.has_section(section):
        return Preferences()

    values: dict[str, Any] = {}
    for key in parser.options(section):
        field = Preferences.model_fields.get(key)
        if field is None:
            raise ConfigurationError(f"Unknown preference '{key}'")
        try:
            if field.annotation is bool:
                values[key] = parser.getboolean(section, key)
            else:
                values[key] = parser.get(section, key)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for preference '{key}': {e}") from e

    try:
        return Preferences(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid preferences: {e}") from e


def load_config(config: str | os.PathLike | ConfigParser) -> ConnectionSettings:
    """
    Load connection settings.

    Args:
        config: Path to an INI file or an already populated ConfigParser

    Returns:
        ConnectionSettings

    Raises:
        ConfigurationError: If the file is missing or the settings invalid
    """
    if isinstance(config, ConfigParser):
        parser = config
    else:
        if not os.path.exists(config):
            raise ConfigurationError(f"Configuration file '{config}' not found")
        parser = ConfigParser(interpolation=None)
        parser.read(config, encoding="utf-8")

    if not parser.has_section(SECTION):
        raise ConfigurationError(f"Configuration has no [{SECTION}] section")

    options = dict(parser.items(SECTION))
    if not options.get("url"):
        raise ConfigurationError("No provider url configured")

    if parser.has_section("logging"):
        options["log_level"] = parser.get("logging", "level", fallback=None)
        options["log_path"] = parser.get("logging", "path", fallback=None)

    options["preferences"] = read_preferences(parser)

    try:
        return ConnectionSettings(**options)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
