"""Boot-time register state for a 64-bit x86 virtual CPU."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from cloudlet.gdt import (
    BOOT_GDT_OFFSET,
    BOOT_IDT_OFFSET,
    KvmSegment,
    gdt_entry,
    kvm_segment_from_gdt,
    write_gdt_table,
    write_idt_value,
)
from cloudlet.guest_memory import GuestMemory
from cloudlet.interrupts import (
    APIC_LVT0,
    APIC_LVT1,
    APIC_MODE_EXTINT,
    APIC_MODE_NMI,
    get_klapic_reg,
    set_apic_delivery_mode,
    set_klapic_reg,
)
from cloudlet.msrs import EFER_LMA, EFER_LME

BOOT_STACK_POINTER = 0x8FF0

PML4_START = 0x9000
PDPTE_START = 0xA000
PDE_START = 0xB000

X86_CR0_PE = 0x1
X86_CR0_PG = 0x8000_0000
X86_CR4_PAE = 0x20

KBD_CMD_IO_ADDR = 0x64
KBD_RESET_CMD = 0xFE

_ENTRY_SIZE = 8
_PDE_COUNT = 512


def _null_segment() -> KvmSegment:
    return KvmSegment(
        base=0, limit=0, selector=0, type_=0, present=0, dpl=0,
        db=0, s=0, l=0, g=0, avl=0, unusable=0,
    )


@dataclass(frozen=True)
class Registers:
    """General purpose registers, instruction pointer and flags."""

    rax: int = 0
    rbx: int = 0
    rcx: int = 0
    rdx: int = 0
    rsi: int = 0
    rdi: int = 0
    rsp: int = 0
    rbp: int = 0
    r8: int = 0
    r9: int = 0
    r10: int = 0
    r11: int = 0
    r12: int = 0
    r13: int = 0
    r14: int = 0
    r15: int = 0
    rip: int = 0
    rflags: int = 0


@dataclass(frozen=True)
class DescriptorTable:
    """Base and limit of a descriptor table register."""

    base: int = 0
    limit: int = 0


@dataclass(frozen=True)
class SpecialRegisters:
    """Segment, descriptor table and control registers."""

    cs: KvmSegment = field(default_factory=_null_segment)
    ds: KvmSegment = field(default_factory=_null_segment)
    es: KvmSegment = field(default_factory=_null_segment)
    fs: KvmSegment = field(default_factory=_null_segment)
    gs: KvmSegment = field(default_factory=_null_segment)
    ss: KvmSegment = field(default_factory=_null_segment)
    tr: KvmSegment = field(default_factory=_null_segment)
    gdt: DescriptorTable = field(default_factory=DescriptorTable)
    idt: DescriptorTable = field(default_factory=DescriptorTable)
    cr0: int = 0
    cr3: int = 0
    cr4: int = 0
    efer: int = 0


@dataclass(frozen=True)
class FpuState:
    """Floating point control state."""

    fcw: int = 0
    fsw: int = 0
    ftwx: int = 0
    last_opcode: int = 0
    last_ip: int = 0
    last_dp: int = 0
    mxcsr: int = 0


def boot_registers(kernel_load: int, zero_page: int) -> Registers:
    """Registers to start the kernel at ``kernel_load`` with ``rsi`` on the zero page."""
    return Registers(
        rflags=0x0000_0000_0000_0002,
        rip=kernel_load,
        rsp=BOOT_STACK_POINTER,
        rbp=BOOT_STACK_POINTER,
        rsi=zero_page,
    )


def boot_gdt_table() -> list[int]:
    """The boot GDT: null, code, data and TSS descriptors."""
    return [
        gdt_entry(0, 0, 0),
        gdt_entry(0xA09B, 0, 0xFFFFF),
        gdt_entry(0xC093, 0, 0xFFFFF),
        gdt_entry(0x808B, 0, 0xFFFFF),
    ]


def _write_page_tables(guest_memory: GuestMemory) -> None:
    # Entry covering VA [0..512GB).
    guest_memory.write_u64(PDPTE_START | 0x03, PML4_START)
    # Entry covering VA [0..1GB).
    guest_memory.write_u64(PDE_START | 0x03, PDPTE_START)
    # 512 2MB pages together covering VA [0..1GB).
    for i in range(_PDE_COUNT):
        guest_memory.write_u64((i << 21) + 0x83, PDE_START + i * _ENTRY_SIZE)


def configure_special_registers(
    sregs: SpecialRegisters, guest_memory: GuestMemory
) -> SpecialRegisters:
    """Write the boot GDT, IDT and page tables and return the 64-bit mode registers."""
    gdt_table = boot_gdt_table()
    code_seg = kvm_segment_from_gdt(gdt_table[1], 1)
    data_seg = kvm_segment_from_gdt(gdt_table[2], 2)
    tss_seg = kvm_segment_from_gdt(gdt_table[3], 3)

    write_gdt_table(gdt_table, guest_memory)
    write_idt_value(0, guest_memory)
    _write_page_tables(guest_memory)

    return replace(
        sregs,
        gdt=DescriptorTable(BOOT_GDT_OFFSET, len(gdt_table) * _ENTRY_SIZE - 1),
        idt=DescriptorTable(BOOT_IDT_OFFSET, _ENTRY_SIZE - 1),
        cs=code_seg,
        ds=data_seg,
        es=data_seg,
        fs=data_seg,
        gs=data_seg,
        ss=data_seg,
        tr=tss_seg,
        cr0=sregs.cr0 | X86_CR0_PE | X86_CR0_PG,
        efer=sregs.efer | EFER_LME | EFER_LMA,
        cr3=PML4_START,
        cr4=sregs.cr4 | X86_CR4_PAE,
    )


def boot_fpu() -> FpuState:
    """FPU state with the default control word and MXCSR."""
    return FpuState(fcw=0x37F, mxcsr=0x1F80)


def configure_lapic(regs: bytes | bytearray) -> bytearray:
    """Return the LAPIC register page with LINT0 as ExtINT and LINT1 as NMI."""
    result = bytearray(regs)
    set_klapic_reg(
        result,
        APIC_LVT0,
        set_apic_delivery_mode(get_klapic_reg(result, APIC_LVT0), APIC_MODE_EXTINT),
    )
    set_klapic_reg(
        result,
        APIC_LVT1,
        set_apic_delivery_mode(get_klapic_reg(result, APIC_LVT1), APIC_MODE_NMI),
    )
    return result