import pytest

from cloudlet.workload import (
    Action,
    AgentError,
    AgentOutput,
    BuildFailedError,
    Config,
    ConfigFileError,
    ConfigParseError,
    InvalidLanguageError,
    Language,
)

VALID = """\
workload-name = "fibonacci"
language = "rust"
action = "prepare-and-run"
code = "fn main() {}"
config-string = ""

[build]
release = true
"""


def _write(tmp_path, text):
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_from_file_reads_fields(tmp_path):
    config = Config.from_file(_write(tmp_path, VALID))
    assert config.workload_name == "fibonacci"
    assert config.language is Language.RUST
    assert config.action is Action.PREPARE_AND_RUN
    assert config.code == "fn main() {}"
    assert config.config_string == VALID


def test_from_file_missing_file(tmp_path):
    with pytest.raises(ConfigFileError) as info:
        Config.from_file(tmp_path / "absent.toml")
    assert str(info.value).startswith("Failed to open config file: ")


def test_from_file_invalid_toml(tmp_path):
    with pytest.raises(ConfigParseError) as info:
        Config.from_file(_write(tmp_path, "workload-name = "))
    assert str(info.value).startswith("Failed to parse config file: ")


def test_from_file_unknown_language(tmp_path):
    with pytest.raises(ConfigParseError):
        Config.from_file(_write(tmp_path, VALID.replace('"rust"', '"cobol"')))


def test_from_file_missing_field(tmp_path):
    text = VALID.replace('code = "fn main() {}"\n', "")
    with pytest.raises(ConfigParseError):
        Config.from_file(_write(tmp_path, text))


def test_from_file_requires_config_string_field(tmp_path):
    text = VALID.replace('config-string = ""\n', "")
    with pytest.raises(ConfigParseError):
        Config.from_file(_write(tmp_path, text))


@pytest.mark.parametrize("name", ["rust", "debug"])
def test_language_parse_round_trip(name):
    assert str(Language.parse(name)) == name


def test_language_parse_invalid():
    with pytest.raises(InvalidLanguageError) as info:
        Language.parse("go")
    assert str(info.value) == "Invalid language: Invalid language: go"
    assert isinstance(info.value, AgentError)


@pytest.mark.parametrize(
    "value,action",
    [("prepare", Action.PREPARE), ("run", Action.RUN), ("prepare-and-run", Action.PREPARE_AND_RUN)],
)
def test_action_values(value, action):
    assert Action(value) is action


def test_build_failed_error_keeps_output():
    output = AgentOutput(exit_code=2, stdout="out", stderr="err")
    error = BuildFailedError(output)
    assert error.output == output
    assert str(error).startswith("Build failed: ")
    assert "err" in str(error)