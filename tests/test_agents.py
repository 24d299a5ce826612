import subprocess
from unittest import mock

import pytest

from cloudlet.agents import DebugAgent, RustAgent, create_agent
from cloudlet.workload import (
    Action,
    BuildFailedError,
    Config,
    ConfigParseError,
    Language,
)


def _config(language=Language.RUST, release=True, name="fib"):
    return Config(
        workload_name=name,
        language=language,
        action=Action.PREPARE_AND_RUN,
        code="fn main() {}",
        config_string=f"[build]\nrelease = {'true' if release else 'false'}\n",
    )


def test_debug_agent_round_trip(tmp_path):
    agent = DebugAgent(_config(Language.DEBUG), tmp_path)
    prepared = agent.prepare()
    assert prepared.stdout == "Build successfully!"
    assert (tmp_path / "fib" / "debug.txt").exists()

    result = agent.run()
    assert result.exit_code == 0
    assert result.stdout.startswith("Debug agent for fib - written at ")
    assert not (tmp_path / "fib").exists()


def test_debug_agent_run_without_prepare(tmp_path):
    with pytest.raises(FileNotFoundError):
        DebugAgent(_config(Language.DEBUG), tmp_path).run()


def test_create_agent_picks_language():
    config = _config(Language.DEBUG)
    agent = create_agent(config)
    assert isinstance(agent, DebugAgent)
    assert agent.workload_config is config

    rust = create_agent(_config(Language.RUST))
    assert isinstance(rust, RustAgent)
    assert rust.release is True


def test_rust_agent_rejects_bad_config():
    config = Config("fib", Language.RUST, Action.RUN, "", "[other]\nkey = 1\n")
    with pytest.raises(ConfigParseError):
        RustAgent(config)


def _fake_build(exit_code, profile):
    calls = []

    def fake_run(command, cwd=None, capture_output=False):
        calls.append((list(command), cwd))
        if exit_code == 0:
            target = cwd / "target" / profile
            target.mkdir(parents=True)
            (target / "fib").write_bytes(b"binary")
        return subprocess.CompletedProcess(command, exit_code, b"built", b"oops")

    return fake_run, calls


@pytest.mark.parametrize("release,profile", [(True, "release"), (False, "debug")])
def test_rust_agent_prepare_success(tmp_path, release, profile):
    fake_run, calls = _fake_build(0, profile)
    agent = RustAgent(_config(release=release), tmp_path)
    with mock.patch("cloudlet.agents.subprocess.run", side_effect=fake_run):
        result = agent.prepare()

    assert result.exit_code == 0
    assert result.stdout == "Build successful"
    assert ("--release" in calls[0][0]) is release
    assert calls[0][0][:2] == ["cargo", "build"]
    assert (tmp_path / "fib").read_bytes() == b"binary"
    assert [p.name for p in tmp_path.iterdir()] == ["fib"]


def test_rust_agent_prepare_writes_sources(tmp_path):
    fake_run, calls = _fake_build(0, "release")
    seen = {}

    def inspecting_run(command, cwd=None, capture_output=False):
        seen["main"] = (cwd / "src" / "main.rs").read_text()
        seen["cargo"] = (cwd / "Cargo.toml").read_text()
        return fake_run(command, cwd=cwd, capture_output=capture_output)

    with mock.patch("cloudlet.agents.subprocess.run", side_effect=inspecting_run):
        result = RustAgent(_config(), tmp_path).prepare()
    assert result.stdout == "Build successful"
    assert result.exit_code == 0
    assert seen["main"] == "fn main() {}"
    assert 'name = "fib"' in seen["cargo"]


def test_rust_agent_prepare_failure(tmp_path):
    fake_run, _ = _fake_build(101, "release")
    with mock.patch("cloudlet.agents.subprocess.run", side_effect=fake_run):
        with pytest.raises(BuildFailedError) as info:
            RustAgent(_config(), tmp_path).prepare()
    assert info.value.output.exit_code == 101
    assert info.value.output.stderr == "oops"


def test_rust_agent_run_success(tmp_path):
    completed = subprocess.CompletedProcess(["x"], 0, b"55\n", b"")
    with mock.patch("cloudlet.agents.subprocess.run", return_value=completed) as run:
        result = RustAgent(_config(), tmp_path).run()
    assert result.stdout == "55\n"
    assert result.exit_code == 0
    assert run.call_args[0][0] == [str(tmp_path / "fib")]


def test_rust_agent_run_failure(tmp_path):
    completed = subprocess.CompletedProcess(["x"], 3, b"", b"panic")
    with mock.patch("cloudlet.agents.subprocess.run", return_value=completed):
        with pytest.raises(BuildFailedError) as info:
            RustAgent(_config(), tmp_path).run()
    assert info.value.output.exit_code == 3
    assert info.value.output.stderr == "panic"