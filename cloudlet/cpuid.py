"""Adjustment of CPUID entries handed to a virtual CPU."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

EBX_CLFLUSH_CACHELINE = 8
EBX_CLFLUSH_SIZE_SHIFT = 8
EBX_CPU_COUNT_SHIFT = 16
EBX_CPUID_SHIFT = 24
ECX_EPB_SHIFT = 3
ECX_TSC_DEADLINE_TIMER_SHIFT = 24
ECX_HYPERVISOR_SHIFT = 31
EDX_HTT_SHIFT = 28

_U32_MASK = 0xFFFF_FFFF


@dataclass(frozen=True)
class CpuidEntry:
    """One CPUID leaf as reported to the guest."""

    function: int
    index: int = 0
    flags: int = 0
    eax: int = 0
    ebx: int = 0
    ecx: int = 0
    edx: int = 0


def _filter_entry(
    entry: CpuidEntry, vcpu_id: int, cpu_count: int, tsc_deadline_timer: bool
) -> CpuidEntry:
    if entry.function == 1:
        ecx = entry.ecx
        edx = entry.edx
        if entry.index == 0:
            ecx |= 1 << ECX_HYPERVISOR_SHIFT
        if tsc_deadline_timer:
            ecx |= 1 << ECX_TSC_DEADLINE_TIMER_SHIFT
        ebx = ((vcpu_id << EBX_CPUID_SHIFT) & _U32_MASK) | (
            EBX_CLFLUSH_CACHELINE << EBX_CLFLUSH_SIZE_SHIFT
        )
        if cpu_count > 1:
            ebx |= (cpu_count << EBX_CPU_COUNT_SHIFT) & _U32_MASK
            edx |= 1 << EDX_HTT_SHIFT
        return replace(entry, ebx=ebx, ecx=ecx, edx=edx)
    if entry.function == 6:
        # No frequency selection in the hypervisor.
        return replace(entry, ecx=entry.ecx & ~(1 << ECX_EPB_SHIFT) & _U32_MASK)
    return entry


def filter_cpuid(
    entries: Iterable[CpuidEntry],
    vcpu_id: int,
    cpu_count: int,
    tsc_deadline_timer: bool,
) -> list[CpuidEntry]:
    """Return the entries adjusted for vCPU ``vcpu_id`` of ``cpu_count`` CPUs."""
    return [
        _filter_entry(entry, vcpu_id, cpu_count, tsc_deadline_timer)
        for entry in entries
    ]