import json
from pathlib import Path

import pytest
import requests
import responses

from cloudlet.cli import (
    DEFAULT_RUN_URL,
    main,
    new_cloudlet_config,
    read_file,
    run_request,
)
from cloudlet.models import Language, LogLevel

CODE = 'fn main() { println!("hi"); }\n'


def _write_config(tmp_path: Path, language: str = "rust") -> Path:
    source = tmp_path / "main.rs"
    source.write_text(CODE, encoding="utf-8")
    config = tmp_path / "config.toml"
    config.write_text(
        "\n".join(
            [
                'workload-name = "fibonacci"',
                f'language = "{language}"',
                'action = "prepare-and-run"',
                "",
                "[server]",
                'address = "localhost"',
                "port = 50051",
                "",
                "[build]",
                f"source-code-path = '{source.as_posix()}'",
                "release = true",
            ]
        ),
        encoding="utf-8",
    )
    return config


def test_read_file_round_trip(tmp_path):
    path = tmp_path / "file.txt"
    path.write_text("some content\n", encoding="utf-8")
    assert read_file(path) == "some content\n"


def test_read_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_file(tmp_path / "missing.txt")


def test_new_cloudlet_config_reads_code(tmp_path):
    config = _write_config(tmp_path)
    request = new_cloudlet_config(config.read_text(encoding="utf-8"))
    assert request.workload_name == "fibonacci"
    assert request.language is Language.RUST
    assert request.log_level is LogLevel.INFO
    assert request.action == "prepare-and-run"
    assert request.code == CODE
    assert request.server.address == "localhost"
    assert request.server.port == 50051
    assert request.build.release is True


def test_new_cloudlet_config_missing_field():
    with pytest.raises(ValueError):
        new_cloudlet_config('language = "rust"\n')


def test_new_cloudlet_config_invalid_language(tmp_path):
    config = _write_config(tmp_path, language="cobol")
    with pytest.raises(ValueError):
        new_cloudlet_config(config.read_text(encoding="utf-8"))


def test_new_cloudlet_config_invalid_toml():
    with pytest.raises(ValueError):
        new_cloudlet_config("this is = = not toml")


def test_run_request_posts_json(tmp_path):
    request = new_cloudlet_config(_write_config(tmp_path).read_text(encoding="utf-8"))
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, DEFAULT_RUN_URL, body="done", status=200)
        text = run_request(request)
        sent = rsps.calls[0].request
    assert text == "done"
    assert json.loads(sent.body) == request.to_dict()
    assert sent.headers["Content-Type"] == "application/json"


def test_main_unreadable_file(tmp_path, capsys):
    status = main(["run", "--config-path", str(tmp_path / "missing.toml")])
    assert status == 1
    assert "Could not read file" in capsys.readouterr().err


def test_main_success(tmp_path, capsys):
    config = _write_config(tmp_path)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, DEFAULT_RUN_URL, body="done", status=200)
        status = main(["run", "-c", str(config)])
    assert status == 0
    assert "Request successful" in capsys.readouterr().out


def test_main_request_error(tmp_path, capsys):
    config = _write_config(tmp_path)
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            DEFAULT_RUN_URL,
            body=requests.ConnectionError("refused"),
        )
        status = main(["run", "-c", str(config)])
    assert status == 0
    assert "Error while making the request" in capsys.readouterr().err


def test_main_requires_config_path():
    with pytest.raises(SystemExit) as excinfo:
        main(["run"])
    assert excinfo.value.code == 2