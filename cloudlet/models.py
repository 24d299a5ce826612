"""Request models shared between the command-line client and the API."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, TypeVar

_E = TypeVar("_E", bound=Enum)


class Language(Enum):
    """Language a workload is written in."""

    RUST = "rust"
    PYTHON = "python"
    NODE = "node"


class LogLevel(Enum):
    """Log level requested for a workload."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


def _require(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = _require(data, key)
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string, got {value!r}")
    return value


def _require_enum(enum_cls: type[_E], data: Mapping[str, Any], key: str) -> _E:
    value = _require(data, key)
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        variants = ", ".join(f"`{member.value}`" for member in enum_cls)
        raise ValueError(
            f"unknown variant `{value}` for `{key}`, expected one of {variants}"
        ) from None


def _require_mapping(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = _require(data, key)
    if not isinstance(value, Mapping):
        raise ValueError(f"field `{key}` must be a table, got {value!r}")
    return value


@dataclass(frozen=True)
class ServerConfig:
    """Address and port of the server that hosts the workload."""

    address: str
    port: int

    def __post_init__(self) -> None:
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ValueError(f"port must be an integer, got {self.port!r}")
        if not 0 <= self.port <= 0xFFFF:
            raise ValueError(f"port out of range: {self.port}")

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "port": self.port}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ServerConfig:
        return cls(address=_require_str(data, "address"), port=_require(data, "port"))


@dataclass(frozen=True)
class BuildConfig:
    """Build options for a workload."""

    source_code_path: Path
    release: bool

    def __post_init__(self) -> None:
        if not isinstance(self.release, bool):
            raise ValueError(f"release must be a boolean, got {self.release!r}")
        object.__setattr__(self, "source_code_path", Path(self.source_code_path))

    def to_dict(self) -> dict[str, Any]:
        return {"source-code-path": str(self.source_code_path), "release": self.release}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BuildConfig:
        return cls(
            source_code_path=Path(_require_str(data, "source-code-path")),
            release=_require(data, "release"),
        )


@dataclass(frozen=True)
class CloudletDtoRequest:
    """Request sent to the API to run a workload."""

    workload_name: str
    language: Language
    code: str
    log_level: LogLevel
    action: str
    server: ServerConfig
    build: BuildConfig

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form of the request."""
        return {
            "workload_name": self.workload_name,
            "language": self.language.value,
            "code": self.code,
            "log_level": self.log_level.value,
            "action": self.action,
            "server": self.server.to_dict(),
            "build": self.build.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CloudletDtoRequest:
        """Build a request from its JSON form, raising ValueError when invalid."""
        return cls(
            workload_name=_require_str(data, "workload_name"),
            language=_require_enum(Language, data, "language"),
            code=_require_str(data, "code"),
            log_level=_require_enum(LogLevel, data, "log_level"),
            action=_require_str(data, "action"),
            server=ServerConfig.from_dict(_require_mapping(data, "server")),
            build=BuildConfig.from_dict(_require_mapping(data, "build")),
        )