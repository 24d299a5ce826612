"""Local APIC register helpers."""

from __future__ import annotations

APIC_LVT0 = 0x350
APIC_LVT1 = 0x360
APIC_MODE_NMI = 0x4
APIC_MODE_EXTINT = 0x7

_REG_SIZE = 4
_U32_MASK = 0xFFFF_FFFF


def _register_slice(regs: bytes | bytearray, reg_offset: int) -> slice:
    if reg_offset < 0 or reg_offset + _REG_SIZE > len(regs):
        raise IndexError(f"LAPIC register offset out of range: {reg_offset:#x}")
    return slice(reg_offset, reg_offset + _REG_SIZE)


def get_klapic_reg(regs: bytes | bytearray, reg_offset: int) -> int:
    """Read the 32-bit register at ``reg_offset`` of the LAPIC register page."""
    return int.from_bytes(regs[_register_slice(regs, reg_offset)], "little")


def set_klapic_reg(regs: bytearray, reg_offset: int, value: int) -> None:
    """Store ``value`` as a 32-bit register at ``reg_offset`` in the register page."""
    regs[_register_slice(regs, reg_offset)] = (value & _U32_MASK).to_bytes(
        _REG_SIZE, "little"
    )


def set_apic_delivery_mode(reg: int, mode: int) -> int:
    """Return ``reg`` with its delivery mode bits replaced by ``mode``."""
    return ((reg & ~0x700) | (mode << 8)) & _U32_MASK