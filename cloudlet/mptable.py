"""Intel MultiProcessor specification table describing the guest's vCPUs."""

from __future__ import annotations

import struct
from enum import Enum

from cloudlet.guest_memory import GuestMemory, GuestMemoryError

MPTABLE_START = 0x9FC00

# With xAPIC there are 255 APIC IDs and the IOAPIC takes one of them.
MAX_SUPPORTED_CPUS = 254

MP_PROCESSOR = 0
MP_BUS = 1
MP_IOAPIC = 2
MP_INTSRC = 3
MP_LINTSRC = 4

CPU_ENABLED = 1
CPU_BOOTPROCESSOR = 2
MPC_APIC_USABLE = 1
MP_IRQDIR_DEFAULT = 0

MP_IRQ_SOURCE_INT = 0
MP_IRQ_SOURCE_NMI = 1
MP_IRQ_SOURCE_SMI = 2
MP_IRQ_SOURCE_EXTINT = 3

SMP_MAGIC_IDENT = b"_MP_"
MPC_SIGNATURE = b"PCMP"
MPC_SPEC = 4
MPC_OEM = b"FC      "
MPC_PRODUCT_ID = b"0" * 12
BUS_TYPE_ISA = b"ISA   "
IO_APIC_DEFAULT_PHYS_BASE = 0xFEC0_0000
APIC_DEFAULT_PHYS_BASE = 0xFEE0_0000
APIC_VERSION = 0x14
CPU_STEPPING = 0x600
CPU_FEATURE_APIC = 0x200
CPU_FEATURE_FPU = 0x001

_MPF_INTEL = struct.Struct("<4sIBBBBBBBB")
_MPC_TABLE = struct.Struct("<4sHbB8s12sIHHII")
_MPC_CPU = struct.Struct("<BBBBII8x")
_MPC_BUS = struct.Struct("<BB6s")
_MPC_IOAPIC = struct.Struct("<BBBBI")
_MPC_INTSRC = struct.Struct("<BBHBBBB")
_MPC_LINTSRC = struct.Struct("<BBHBBBB")

MPF_INTEL_SIZE = _MPF_INTEL.size
MPC_TABLE_SIZE = _MPC_TABLE.size
MPC_CPU_SIZE = _MPC_CPU.size
MPC_BUS_SIZE = _MPC_BUS.size
MPC_IOAPIC_SIZE = _MPC_IOAPIC.size
MPC_INTSRC_SIZE = _MPC_INTSRC.size
MPC_LINTSRC_SIZE = _MPC_LINTSRC.size

_MPF_CHECKSUM_OFFSET = 10
_INTSRC_COUNT = 16
_U64_MAX = 0xFFFF_FFFF_FFFF_FFFF


class MptableErrorKind(Enum):
    """What went wrong while setting up the MP table."""

    NOT_ENOUGH_MEMORY = "there was too little guest memory to store the entire MP table"
    ADDRESS_OVERFLOW = "the MP table has too little address space to be stored"
    CLEAR = "failure while zeroing out the memory for the MP table"
    TOO_MANY_CPUS = "number of CPUs exceeds the maximum supported CPUs"
    WRITE_MPF_INTEL = "failure to write the MP floating pointer"
    WRITE_MPC_CPU = "failure to write MP CPU entry"
    WRITE_MPC_IOAPIC = "failure to write MP ioapic entry"
    WRITE_MPC_BUS = "failure to write MP bus entry"
    WRITE_MPC_INTSRC = "failure to write MP interrupt source entry"
    WRITE_MPC_LINTSRC = "failure to write MP local interrupt source entry"
    WRITE_MPC_TABLE = "failure to write MP table header"


class MptableError(Exception):
    """Raised when the MP table cannot be written to guest memory."""

    def __init__(self, kind: MptableErrorKind) -> None:
        super().__init__(kind.value)
        self.kind = kind


def _checksum(data: bytes) -> int:
    return sum(data) & 0xFF


def mpf_intel_compute_checksum(data: bytes) -> int:
    """Checksum byte that makes the MP floating pointer structure sum to zero."""
    if len(data) != MPF_INTEL_SIZE:
        raise ValueError(f"MP floating pointer must be {MPF_INTEL_SIZE} bytes")
    partial = (_checksum(data) - data[_MPF_CHECKSUM_OFFSET]) & 0xFF
    return (-partial) & 0xFF


def compute_mp_size(num_cpus: int) -> int:
    """Size in bytes of the whole MP table for ``num_cpus`` processors."""
    if num_cpus < 0:
        raise ValueError(f"negative CPU count: {num_cpus}")
    return (
        MPF_INTEL_SIZE
        + MPC_TABLE_SIZE
        + MPC_CPU_SIZE * num_cpus
        + MPC_IOAPIC_SIZE
        + MPC_BUS_SIZE
        + MPC_INTSRC_SIZE * _INTSRC_COUNT
        + MPC_LINTSRC_SIZE * 2
    )


def _write(mem: GuestMemory, data: bytes, addr: int, kind: MptableErrorKind) -> None:
    try:
        mem.write(data, addr)
    except GuestMemoryError as exc:
        raise MptableError(kind) from exc


def setup_mptable(mem: GuestMemory, num_cpus: int) -> None:
    """Write the MP table for ``num_cpus`` processors at ``MPTABLE_START``."""
    if num_cpus < 0:
        raise ValueError(f"negative CPU count: {num_cpus}")
    if num_cpus > MAX_SUPPORTED_CPUS:
        raise MptableError(MptableErrorKind.TOO_MANY_CPUS)

    base_mp = MPTABLE_START
    mp_size = compute_mp_size(num_cpus)
    ioapicid = num_cpus + 1

    end_mp = base_mp + mp_size - 1
    if end_mp > _U64_MAX:
        raise MptableError(MptableErrorKind.ADDRESS_OVERFLOW)
    if not mem.address_in_range(end_mp):
        raise MptableError(MptableErrorKind.NOT_ENOUGH_MEMORY)

    _write(mem, bytes(mp_size), base_mp, MptableErrorKind.CLEAR)

    mpf_fields = [SMP_MAGIC_IDENT, base_mp + MPF_INTEL_SIZE, 1, 4, 0, 0, 0, 0, 0, 0]
    mpf_checksum = mpf_intel_compute_checksum(_MPF_INTEL.pack(*mpf_fields))
    mpf_fields[4] = mpf_checksum
    _write(mem, _MPF_INTEL.pack(*mpf_fields), base_mp, MptableErrorKind.WRITE_MPF_INTEL)
    base_mp += MPF_INTEL_SIZE

    # The table header is filled in last, once its length is known.
    table_base = base_mp
    base_mp += MPC_TABLE_SIZE

    checksum = 0

    def emit(data: bytes, kind: MptableErrorKind) -> None:
        nonlocal base_mp, checksum
        _write(mem, data, base_mp, kind)
        base_mp += len(data)
        checksum = (checksum + _checksum(data)) & 0xFF

    for cpu_id in range(num_cpus):
        cpuflag = CPU_ENABLED | (CPU_BOOTPROCESSOR if cpu_id == 0 else 0)
        emit(
            _MPC_CPU.pack(
                MP_PROCESSOR,
                cpu_id,
                APIC_VERSION,
                cpuflag,
                CPU_STEPPING,
                CPU_FEATURE_APIC | CPU_FEATURE_FPU,
            ),
            MptableErrorKind.WRITE_MPC_CPU,
        )

    emit(_MPC_BUS.pack(MP_BUS, 0, BUS_TYPE_ISA), MptableErrorKind.WRITE_MPC_BUS)

    emit(
        _MPC_IOAPIC.pack(
            MP_IOAPIC, ioapicid, APIC_VERSION, MPC_APIC_USABLE, IO_APIC_DEFAULT_PHYS_BASE
        ),
        MptableErrorKind.WRITE_MPC_IOAPIC,
    )

    # Same routing as the kernel's default IRQ routing.
    for irq in range(_INTSRC_COUNT):
        emit(
            _MPC_INTSRC.pack(
                MP_INTSRC, MP_IRQ_SOURCE_INT, MP_IRQDIR_DEFAULT, 0, irq, ioapicid, irq
            ),
            MptableErrorKind.WRITE_MPC_INTSRC,
        )

    emit(
        _MPC_LINTSRC.pack(
            MP_LINTSRC, MP_IRQ_SOURCE_EXTINT, MP_IRQDIR_DEFAULT, 0, 0, 0, 0
        ),
        MptableErrorKind.WRITE_MPC_LINTSRC,
    )
    # Destination 0xFF addresses all local APICs.
    emit(
        _MPC_LINTSRC.pack(
            MP_LINTSRC, MP_IRQ_SOURCE_NMI, MP_IRQDIR_DEFAULT, 0, 0, 0xFF, 1
        ),
        MptableErrorKind.WRITE_MPC_LINTSRC,
    )

    table_length = base_mp - table_base
    header_fields = [
        MPC_SIGNATURE,
        table_length,
        MPC_SPEC,
        0,
        MPC_OEM,
        MPC_PRODUCT_ID,
        0,
        0,
        0,
        APIC_DEFAULT_PHYS_BASE,
        0,
    ]
    checksum = (checksum + _checksum(_MPC_TABLE.pack(*header_fields))) & 0xFF
    header_fields[3] = (-checksum) & 0xFF
    _write(mem, _MPC_TABLE.pack(*header_fields), table_base, MptableErrorKind.WRITE_MPC_TABLE)