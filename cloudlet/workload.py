"""Workload configuration and the errors raised while running a workload."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import tomli


class AgentError(Exception):
    """Base class for every failure of a workload agent."""


class ConfigFileError(AgentError):
    """The configuration file could not be read."""

    def __init__(self, cause: object) -> None:
        super().__init__(f"Failed to open config file: {cause}")
        self.cause = cause


class ConfigParseError(AgentError):
    """The configuration could not be parsed."""

    def __init__(self, cause: object) -> None:
        super().__init__(f"Failed to parse config file: {cause}")
        self.cause = cause


class InvalidLanguageError(AgentError):
    """The requested language has no agent."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"Invalid language: {detail}")
        self.detail = detail


@dataclass(frozen=True)
class AgentOutput:
    """Exit code and captured output of a build or a run."""

    exit_code: int
    stdout: str
    stderr: str


class BuildFailedError(AgentError):
    """A build or a run ended with a failing exit code."""

    def __init__(self, output: AgentOutput) -> None:
        super().__init__(f"Build failed: {output!r}")
        self.output = output


class Language(Enum):
    """Language handled by an agent."""

    RUST = "rust"
    DEBUG = "debug"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str) -> Language:
        """Return the language named ``value``, raising InvalidLanguageError otherwise."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidLanguageError(f"Invalid language: {value}") from None


class Action(Enum):
    """What the agent is asked to do with the workload."""

    PREPARE = "prepare"
    RUN = "run"
    PREPARE_AND_RUN = "prepare-and-run"


def _field(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ConfigParseError(f"missing field `{key}`") from None


def _str_field(data: Mapping[str, Any], key: str) -> str:
    value = _field(data, key)
    if not isinstance(value, str):
        raise ConfigParseError(f"field `{key}` must be a string, got {value!r}")
    return value


def _enum_field(enum_cls: type[Enum], data: Mapping[str, Any], key: str) -> Any:
    value = _str_field(data, key)
    try:
        return enum_cls(value)
    except ValueError:
        variants = ", ".join(f"`{member.value}`" for member in enum_cls)
        raise ConfigParseError(
            f"unknown variant `{value}`, expected one of {variants}"
        ) from None


@dataclass(frozen=True)
class Config:
    """Generic agent configuration."""

    workload_name: str
    language: Language
    action: Action
    code: str
    config_string: str

    @classmethod
    def from_file(cls, file_path: str | Path) -> Config:
        """Load a configuration file; the whole file is kept as ``config_string``."""
        try:
            text = Path(file_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigFileError(exc) from exc
        try:
            data = tomli.loads(text)
        except tomli.TOMLDecodeError as exc:
            raise ConfigParseError(exc) from exc

        # The field must be present, but its value is replaced by the file itself.
        _str_field(data, "config-string")
        return cls(
            workload_name=_str_field(data, "workload-name"),
            language=_enum_field(Language, data, "language"),
            action=_enum_field(Action, data, "action"),
            code=_str_field(data, "code"),
            config_string=text,
        )