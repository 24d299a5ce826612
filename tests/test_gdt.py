import pytest

from cloudlet.gdt import (
    BOOT_GDT_OFFSET,
    BOOT_IDT_OFFSET,
    gdt_entry,
    get_base,
    get_limit,
    get_p,
    kvm_segment_from_gdt,
    write_gdt_table,
    write_idt_value,
)
from cloudlet.guest_memory import GuestMemory, GuestMemoryError


def test_field_parse():
    gdt = gdt_entry(0xA09B, 0x10_0000, 0xFFFFF)
    seg = kvm_segment_from_gdt(gdt, 0)
    assert seg.g == 0x1
    assert seg.db == 0x0
    assert seg.l == 0x1
    assert seg.avl == 0x0
    assert seg.present == 0x1
    assert seg.dpl == 0x0
    assert seg.s == 0x1
    assert seg.type_ == 0xB
    assert seg.base == 0x10_0000
    assert seg.limit == 0xFFFFF
    assert seg.unusable == 0x0


@pytest.mark.parametrize("base", [0, 0x10_0000, 0xDEAD_BEEF, 0xFFFF_FFFF])
@pytest.mark.parametrize("limit", [0, 0xFFFF, 0xFFFFF])
def test_base_and_limit_round_trip(base, limit):
    entry = gdt_entry(0xC093, base, limit)
    assert get_base(entry) == base
    assert get_limit(entry) == limit


def test_null_entry_is_unusable():
    seg = kvm_segment_from_gdt(gdt_entry(0, 0, 0), 0)
    assert seg.present == 0
    assert seg.unusable == 1


def test_selector_is_index_times_eight():
    seg = kvm_segment_from_gdt(gdt_entry(0x808B, 0, 0xFFFFF), 3)
    assert seg.selector == 24
    assert seg.type_ == 0xB


def test_data_segment_fields():
    seg = kvm_segment_from_gdt(gdt_entry(0xC093, 0, 0xFFFFF), 2)
    assert seg.db == 1
    assert seg.l == 0
    assert seg.type_ == 0x3
    assert get_p(gdt_entry(0xC093, 0, 0xFFFFF)) == 1


def test_selector_overflow_rejected():
    with pytest.raises(ValueError):
        kvm_segment_from_gdt(0, 32)


def test_write_gdt_table_places_entries():
    mem = GuestMemory([(0, 0x1000)])
    table = [
        gdt_entry(0, 0, 0),
        gdt_entry(0xA09B, 0, 0xFFFFF),
        gdt_entry(0xC093, 0, 0xFFFFF),
        gdt_entry(0x808B, 0, 0xFFFFF),
    ]
    write_gdt_table(table, mem)
    assert [mem.read_u64(BOOT_GDT_OFFSET + 8 * i) for i in range(4)] == table


def test_write_idt_value():
    mem = GuestMemory([(0, 0x1000)])
    mem.write(b"\xff" * 8, BOOT_IDT_OFFSET)
    write_idt_value(0, mem)
    assert mem.read_u64(BOOT_IDT_OFFSET) == 0


def test_write_gdt_table_outside_memory_raises():
    mem = GuestMemory([(0, 0x100)])
    with pytest.raises(GuestMemoryError):
        write_gdt_table([gdt_entry(0, 0, 0)], mem)