"""Command-line arguments of the initramfs generator."""

from __future__ import annotations

import argparse
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

# Image name and tag as defined by the OCI distribution specification.
_IMAGE_NAME_RE = re.compile(
    r"[a-z0-9]+((\.|_|__|-+)[a-z0-9]+)*(/[a-z0-9]+((\.|_|__|-+)[a-z0-9]+)*)*"
    r"(?::[a-zA-Z0-9_][a-zA-Z0-9._-]{0,127})?"
)

DEFAULT_TEMP_DIRECTORY = Path("/tmp/cloudlet-fs-gen")
DEFAULT_ARCHITECTURE = "amd64"


@dataclass(frozen=True)
class FsGenArgs:
    """Options for converting an OCI image into an initramfs."""

    image_name: str
    agent_host_path: Path
    output_file: Path
    temp_directory: Path
    initfile_path: Path | None
    architecture: str
    debug: bool


def is_valid_image_name(name: str) -> bool:
    """Tell whether ``name`` contains an OCI image reference."""
    return _IMAGE_NAME_RE.search(name) is not None


def default_output_file() -> Path:
    """Default location of the generated initramfs in the working directory."""
    return Path.cwd() / "initramfs.img"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fs-gen", description="Convert an OCI image into a CPIO file"
    )
    parser.add_argument("image_name", help="The name of the image to download")
    parser.add_argument(
        "agent_host_path", type=Path, help="The host path to the guest agent binary"
    )
    parser.add_argument(
        "-o",
        "--output",
        dest="output_file",
        type=Path,
        default=default_output_file(),
        help="The path to the output file",
    )
    parser.add_argument(
        "-t",
        "--tempdir",
        dest="temp_directory",
        type=Path,
        default=DEFAULT_TEMP_DIRECTORY,
        help="The path to the temporary folder",
    )
    parser.add_argument("-i", "--init", dest="initfile_path", type=Path, default=None)
    parser.add_argument("--arch", dest="architecture", default=DEFAULT_ARCHITECTURE)
    parser.add_argument("-d", "--debug", action="store_true")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> FsGenArgs:
    """Parse and validate the arguments; invalid input exits with status 2."""
    parser = _build_parser()
    namespace = parser.parse_args(argv)

    if not is_valid_image_name(namespace.image_name):
        parser.error(f'Invalid image name: "{namespace.image_name}"')
    if not namespace.agent_host_path.exists():
        parser.error(f'File not found for agent binary: "{namespace.agent_host_path}"')

    return FsGenArgs(
        image_name=namespace.image_name,
        agent_host_path=namespace.agent_host_path,
        output_file=namespace.output_file,
        temp_directory=namespace.temp_directory,
        initfile_path=namespace.initfile_path,
        architecture=namespace.architecture,
        debug=namespace.debug,
    )