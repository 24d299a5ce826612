"""Global descriptor table entries and their KVM segment form."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from cloudlet.guest_memory import GuestMemory

BOOT_GDT_OFFSET = 0x500
BOOT_IDT_OFFSET = 0x520
BOOT_GDT_MAX = 4

_ENTRY_SIZE = 8


@dataclass(frozen=True)
class KvmSegment:
    """Segment register contents as KVM expects them."""

    base: int
    limit: int
    selector: int
    type_: int
    present: int
    dpl: int
    db: int
    s: int
    l: int  # noqa: E741
    g: int
    avl: int
    unusable: int


def gdt_entry(flags: int, base: int, limit: int) -> int:
    """Pack flags, base and limit into a 64-bit descriptor."""
    return (
        ((base & 0xFF00_0000) << (56 - 24))
        | ((flags & 0x0000_F0FF) << 40)
        | ((limit & 0x000F_0000) << (48 - 16))
        | ((base & 0x00FF_FFFF) << 16)
        | (limit & 0x0000_FFFF)
    )


def get_base(entry: int) -> int:
    return (
        ((entry & 0xFF00_0000_0000_0000) >> 32)
        | ((entry & 0x0000_00FF_0000_0000) >> 16)
        | ((entry & 0x0000_0000_FFFF_0000) >> 16)
    )


def get_limit(entry: int) -> int:
    return ((entry & 0x000F_0000_0000_0000) >> 32) | (entry & 0x0000_0000_0000_FFFF)


def get_g(entry: int) -> int:
    return (entry & 0x0080_0000_0000_0000) >> 55


def get_db(entry: int) -> int:
    return (entry & 0x0040_0000_0000_0000) >> 54


def get_l(entry: int) -> int:
    return (entry & 0x0020_0000_0000_0000) >> 53


def get_avl(entry: int) -> int:
    return (entry & 0x0010_0000_0000_0000) >> 52


def get_p(entry: int) -> int:
    return (entry & 0x0000_8000_0000_0000) >> 47


def get_dpl(entry: int) -> int:
    return (entry & 0x0000_6000_0000_0000) >> 45


def get_s(entry: int) -> int:
    return (entry & 0x0000_1000_0000_0000) >> 44


def get_type(entry: int) -> int:
    return (entry & 0x0000_0F00_0000_0000) >> 40


def kvm_segment_from_gdt(entry: int, table_index: int) -> KvmSegment:
    """Build the KVM segment for ``entry`` found at ``table_index`` in the table."""
    selector = table_index * _ENTRY_SIZE
    if not 0 <= selector <= 0xFF:
        raise ValueError(f"GDT table index out of range: {table_index}")
    present = get_p(entry)
    return KvmSegment(
        base=get_base(entry),
        limit=get_limit(entry),
        selector=selector,
        type_=get_type(entry),
        present=present,
        dpl=get_dpl(entry),
        db=get_db(entry),
        s=get_s(entry),
        l=get_l(entry),
        g=get_g(entry),
        avl=get_avl(entry),
        unusable=1 if present == 0 else 0,
    )


def write_gdt_table(table: Iterable[int], guest_mem: GuestMemory) -> None:
    """Write the descriptors to guest memory starting at ``BOOT_GDT_OFFSET``."""
    for index, entry in enumerate(table):
        guest_mem.write_u64(entry, BOOT_GDT_OFFSET + index * _ENTRY_SIZE)


def write_idt_value(val: int, guest_mem: GuestMemory) -> None:
    """Write the boot IDT value at ``BOOT_IDT_OFFSET``."""
    guest_mem.write_u64(val, BOOT_IDT_OFFSET)