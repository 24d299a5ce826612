"""Command-line arguments of the virtual machine monitor."""

from __future__ import annotations

import argparse
import ipaddress
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Sequence

TRACE = 5
OFF = logging.CRITICAL + 10

# Ordered from the least to the most verbose; index 2 is the default.
_LEVELS = (logging.ERROR, logging.WARNING, logging.INFO, logging.DEBUG, TRACE)
_DEFAULT_LEVEL_INDEX = 2


@dataclass(frozen=True)
class VmmArguments:
    """Settings for running one VMM instance."""

    kernel: Path
    initramfs: Path
    iface_host_addr: ipaddress.IPv4Address
    netmask: ipaddress.IPv4Address
    iface_guest_addr: ipaddress.IPv4Address
    cpus: int = 1
    memory: int = 512
    verbose: int = 0
    quiet: int = 0

    def log_level(self) -> int:
        """Logging level selected by the verbosity flags; ``OFF`` silences everything."""
        index = _DEFAULT_LEVEL_INDEX + self.verbose - self.quiet
        if index < 0:
            return OFF
        return _LEVELS[min(index, len(_LEVELS) - 1)]


def _bounded_int(maximum: int) -> Callable[[str], int]:
    def convert(text: str) -> int:
        try:
            value = int(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid integer: {text!r}") from None
        if not 0 <= value <= maximum:
            raise argparse.ArgumentTypeError(f"{value} is not in 0..={maximum}")
        return value

    return convert


def _ipv4(text: str) -> ipaddress.IPv4Address:
    try:
        return ipaddress.IPv4Address(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid IPv4 address: {text!r}") from None


def _env_argument(
    parser: argparse.ArgumentParser,
    *flags: str,
    env: str,
    default: str | None = None,
    **kwargs: Any,
) -> None:
    value = os.environ.get(env, default)
    parser.add_argument(*flags, default=value, required=value is None, **kwargs)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vmm")
    commands = parser.add_subparsers(dest="command", required=True)

    cli = commands.add_parser("cli", help="Run a VMM instance.")
    _env_argument(cli, "-k", "--kernel", env="KERNEL", type=Path,
                  help="Path to the image of the Linux kernel to boot.")
    _env_argument(cli, "-i", "--initramfs", env="INITRAMFS", type=Path,
                  help="Path to the cpio archive to use as the initramfs.")
    _env_argument(cli, "-c", "--cpus", env="CPUS", default="1", type=_bounded_int(0xFF),
                  help="Number of virtual CPUs assigned to the guest.")
    _env_argument(cli, "-m", "--memory", env="MEMORY", default="512",
                  type=_bounded_int(0xFFFF_FFFF),
                  help="Memory amount (in MBytes) assigned to the guest.")
    _env_argument(cli, "--iface-host-addr", env="IFACE_HOST_ADDR", type=_ipv4,
                  help="IPv4 address of the host tap interface.")
    _env_argument(cli, "--netmask", env="NETMASK", type=_ipv4,
                  help="Subnet mask for network.")
    _env_argument(cli, "--iface-guest-addr", env="IFACE_GUEST_ADDR", type=_ipv4,
                  help="IPv4 address of the guest eth0 interface.")
    cli.add_argument("-v", "--verbose", action="count", default=0,
                     help="Increase logging verbosity.")
    cli.add_argument("-q", "--quiet", action="count", default=0,
                     help="Decrease logging verbosity.")

    commands.add_parser("grpc", help="Run a GRPC server listening for incoming requests.")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> VmmArguments | None:
    """Parse the arguments; returns None for the ``grpc`` command."""
    namespace = _build_parser().parse_args(argv)
    if namespace.command == "grpc":
        return None
    return VmmArguments(
        kernel=namespace.kernel,
        initramfs=namespace.initramfs,
        iface_host_addr=namespace.iface_host_addr,
        netmask=namespace.netmask,
        iface_guest_addr=namespace.iface_guest_addr,
        cpus=namespace.cpus,
        memory=namespace.memory,
        verbose=namespace.verbose,
        quiet=namespace.quiet,
    )