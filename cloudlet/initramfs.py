"""Assembly of the initramfs archive from a root directory."""

from __future__ import annotations

import logging
import shutil
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

PACKAGE_COMMAND = (
    "find . -print0 | cpio -0 --create --owner=root:root --format=newc | xz -9 --format=lzma"
)


class InitramfsError(Exception):
    """Raised when a step of building the initramfs fails."""


@contextmanager
def _context(message: str) -> Iterator[None]:
    try:
        yield
    except OSError as exc:
        raise InitramfsError(message) from exc


def create_init_file(path: str | Path, initfile: str | Path | None) -> None:
    """Copy the init file into ``path`` as ``init``."""
    logger.info("Writing initfile...")
    if initfile is None:
        raise InitramfsError("No initfile provided and no default initfile is available")

    with _context("Failed to copy provided initfile to initramfs"):
        shutil.copy(initfile, Path(path) / "init")

    logger.info("Initfile written!")


def insert_agent(destination: str | Path, agent_path: str | Path) -> None:
    """Copy the agent binary into ``destination`` as an executable ``agent``."""
    logger.info("Inserting agent into fs...")
    target = Path(destination) / "agent"

    with _context("Could not open agent file inside initramfs"):
        dest = target.open("wb")
    with dest:
        with _context("Failed to set permissions for agent file"):
            target.chmod(0o755)
        with _context("Could not open host agent file"):
            source = Path(agent_path).open("rb")
        with source, _context("Failed to copy agent contents from host to destination"):
            shutil.copyfileobj(source, dest)

    logger.info("Agent inserted!")


def generate_initramfs(root_directory: str | Path, output: str | Path) -> None:
    """Pack ``root_directory`` into an lzma-compressed newc CPIO archive at ``output``."""
    output = Path(output)
    with _context("Could not open output file to write initramfs"):
        file = output.open("wb")
    with file:
        with _context("Failed to set permissions for output file"):
            output.chmod(0o644)

        logger.info("Generating initramfs...")
        with _context("Failed to package initramfs into bundle"):
            subprocess.run(
                ["sh", "-c", PACKAGE_COMMAND],
                cwd=root_directory,
                stdout=file,
                check=False,
            )

    logger.info("Initramfs generated!")