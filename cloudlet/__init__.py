"""Workload agents, initramfs helpers, a command-line client and x86-64 VM boot structures."""

__version__ = "0.1.0"