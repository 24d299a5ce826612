"""Command-line client that sends a workload to the Cloudlet API."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Mapping, Sequence

import requests
import tomli

from cloudlet.models import (
    BuildConfig,
    CloudletDtoRequest,
    Language,
    LogLevel,
    ServerConfig,
)

DEFAULT_RUN_URL = "http://127.0.0.1:3000/run"


def read_file(file_path: str | Path) -> str:
    """Return the whole text content of ``file_path``."""
    return Path(file_path).read_text(encoding="utf-8")


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string, got {value!r}")
    return value


def new_cloudlet_config(config: str) -> CloudletDtoRequest:
    """Build the request for the TOML ``config``, reading the code it points to."""
    try:
        data = tomli.loads(config)
    except tomli.TOMLDecodeError as exc:
        raise ValueError(f"Error while parsing the config file: {exc}") from exc

    try:
        workload_name = _string(data, "workload-name")
        language = Language(data["language"])
        action = _string(data, "action")
        server = ServerConfig.from_dict(data["server"])
        build = BuildConfig.from_dict(data["build"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Error while parsing the config file: {exc}") from exc

    code = read_file(build.source_code_path)

    return CloudletDtoRequest(
        workload_name=workload_name,
        language=language,
        code=code,
        log_level=LogLevel.INFO,
        action=action,
        server=server,
        build=build,
    )


def run_request(request: CloudletDtoRequest, url: str = DEFAULT_RUN_URL) -> str:
    """Send ``request`` to the API and return the response body."""
    response = requests.post(
        url,
        data=json.dumps(request.to_dict()),
        headers={"Content-Type": "application/json"},
    )
    text = response.text
    print(f"Response: {text!r}")
    return text


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cloudlet", description="Run workloads on Cloudlet.")
    commands = parser.add_subparsers(dest="command", required=True)
    run = commands.add_parser("run", help="Run a workload described by a config file.")
    run.add_argument("-c", "--config-path", required=True, type=Path)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the client; returns the process exit status."""
    args = _build_parser().parse_args(argv)

    if args.command == "run":
        try:
            toml_file = read_file(args.config_path)
        except (OSError, UnicodeDecodeError):
            print(f"Could not read file `{args.config_path}`", file=sys.stderr)
            return 1
        body = new_cloudlet_config(toml_file)
        try:
            run_request(body)
        except requests.RequestException as exc:
            print(f"Error while making the request: {exc}", file=sys.stderr)
        else:
            print("Request successful")

    return 0