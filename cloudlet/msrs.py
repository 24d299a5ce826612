"""Model-specific registers programmed on a vCPU at boot."""

from __future__ import annotations

from dataclasses import dataclass

MSR_STAR = 0xC000_0081
MSR_LSTAR = 0xC000_0082
MSR_CSTAR = 0xC000_0083
MSR_SYSCALL_MASK = 0xC000_0084
MSR_KERNEL_GS_BASE = 0xC000_0102
MSR_IA32_TSC = 0x0000_0010
MSR_IA32_SYSENTER_CS = 0x0000_0174
MSR_IA32_SYSENTER_ESP = 0x0000_0175
MSR_IA32_SYSENTER_EIP = 0x0000_0176
MSR_IA32_MISC_ENABLE = 0x0000_01A0
MSR_IA32_MISC_ENABLE_FAST_STRING = 0x0000_0001

EFER_LME = 0x0000_0100
EFER_LMA = 0x0000_0400


@dataclass(frozen=True)
class MsrEntry:
    """One MSR index together with the value to load into it."""

    index: int
    data: int = 0


def create_boot_msr_entries() -> list[MsrEntry]:
    """Return the MSRs set on every vCPU before the kernel starts, in order."""
    zeroed = [
        MSR_IA32_SYSENTER_CS,
        MSR_IA32_SYSENTER_ESP,
        MSR_IA32_SYSENTER_EIP,
        # x86_64 specific MSRs.
        MSR_STAR,
        MSR_CSTAR,
        MSR_KERNEL_GS_BASE,
        MSR_SYSCALL_MASK,
        MSR_LSTAR,
        MSR_IA32_TSC,
    ]
    entries = [MsrEntry(index) for index in zeroed]
    entries.append(MsrEntry(MSR_IA32_MISC_ENABLE, MSR_IA32_MISC_ENABLE_FAST_STRING))
    return entries