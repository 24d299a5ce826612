"""Agents that build and run a workload for one language."""

from __future__ import annotations

import random
import shutil
import string
import subprocess
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

import tomli

from cloudlet.workload import (
    AgentOutput,
    BuildFailedError,
    Config,
    ConfigParseError,
    Language,
)

DEFAULT_TMP_DIR = Path("/tmp")

_ALPHANUMERIC = string.ascii_letters + string.digits


class Agent(ABC):
    """Builds and runs one workload."""

    @abstractmethod
    def prepare(self) -> AgentOutput:
        """Build the workload so that it can be run."""

    @abstractmethod
    def run(self) -> AgentOutput:
        """Run the prepared workload."""


def _output_from(completed: subprocess.CompletedProcess) -> AgentOutput:
    return AgentOutput(
        exit_code=completed.returncode,
        stdout=completed.stdout.decode("utf-8"),
        stderr=completed.stderr.decode("utf-8"),
    )


class DebugAgent(Agent):
    """Agent that writes and reads back a marker file instead of building."""

    def __init__(self, workload_config: Config, tmp_dir: str | Path = DEFAULT_TMP_DIR) -> None:
        self.workload_config = workload_config
        self.tmp_dir = Path(tmp_dir)

    @property
    def _directory(self) -> Path:
        return self.tmp_dir / self.workload_config.workload_name

    def prepare(self) -> AgentOutput:
        directory = self._directory
        print(f"Function directory: {directory}")
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "debug.txt").write_text(
            f"Debug agent for {self.workload_config.workload_name}"
            f" - written at {datetime.now().isoformat()}",
            encoding="utf-8",
        )
        return AgentOutput(exit_code=0, stdout="Build successfully!", stderr="")

    def run(self) -> AgentOutput:
        directory = self._directory
        content = (directory / "debug.txt").read_text(encoding="utf-8")
        shutil.rmtree(directory)
        return AgentOutput(exit_code=0, stdout=content, stderr="")


class RustAgent(Agent):
    """Agent that builds the workload with cargo and runs the binary."""

    def __init__(self, workload_config: Config, tmp_dir: str | Path = DEFAULT_TMP_DIR) -> None:
        self.workload_config = workload_config
        self.tmp_dir = Path(tmp_dir)
        try:
            settings = tomli.loads(workload_config.config_string)
            release = settings["build"]["release"]
        except (tomli.TOMLDecodeError, KeyError, TypeError) as exc:
            raise ConfigParseError(exc) from exc
        if not isinstance(release, bool):
            raise ConfigParseError(f"field `release` must be a boolean, got {release!r}")
        self.release = release

    @property
    def _binary(self) -> Path:
        return self.tmp_dir / self.workload_config.workload_name

    def _build(self, function_dir: Path) -> AgentOutput:
        command = ["cargo", "build"]
        if self.release:
            command.append("--release")
        completed = subprocess.run(command, cwd=function_dir, capture_output=True)
        return _output_from(completed)

    def prepare(self) -> AgentOutput:
        name = self.workload_config.workload_name
        function_dir = self.tmp_dir / "".join(random.choices(_ALPHANUMERIC, k=16))
        print(f"Function directory: {function_dir}")

        (function_dir / "src").mkdir(parents=True, exist_ok=True)
        (function_dir / "src" / "main.rs").write_text(
            self.workload_config.code, encoding="utf-8"
        )
        (function_dir / "Cargo.toml").write_text(
            "[package]\n"
            f'name = "{name}"\n'
            'version = "0.1.0"\n'
            'edition = "2018"\n',
            encoding="utf-8",
        )

        result = self._build(function_dir)
        if result.exit_code != 0:
            print(f"Build failed: {result!r}")
            raise BuildFailedError(result)

        profile = "release" if self.release else "debug"
        shutil.copy(function_dir / "target" / profile / name, self._binary)
        shutil.rmtree(function_dir)

        return AgentOutput(exit_code=result.exit_code, stdout="Build successful", stderr="")

    def run(self) -> AgentOutput:
        completed = subprocess.run([str(self._binary)], capture_output=True)
        output = _output_from(completed)
        if completed.returncode != 0:
            print(f"Run failed: {output!r}")
            raise BuildFailedError(output)
        return output


def create_agent(config: Config) -> Agent:
    """Return the agent for the configuration's language."""
    if config.language is Language.RUST:
        return RustAgent(config)
    return DebugAgent(config)