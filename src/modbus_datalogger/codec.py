"""Register codec: turn raw 16-bit register words into sample values."""

import struct
from collections.abc import Sequence

from .types import ValueKind


def registers_to_float(high: int, low: int) -> float:
    """
    Reinterpret two registers as an IEEE 754 single-precision float.

    The first register carries the high-order 16 bits of the 32-bit word. The
    result is the bit pattern reinterpreted, not a numeric conversion.
    """
    return struct.unpack(">f", struct.pack(">HH", high & 0xFFFF, low & 0xFFFF))[0]


def decode(kind: ValueKind, registers: Sequence[int]) -> float:
    """
    Decode the registers read for one tag into its numeric value.

    Callers must pass exactly ``kind.register_count`` words; any other count
    is an engine defect and raises ValueError rather than yielding a value.
    """
    expected = kind.register_count
    if len(registers) != expected:
        raise ValueError(f"{kind.value} expects {expected} register(s), got {len(registers)}")

    if kind in (ValueKind.REAL_HOLDING, ValueKind.REAL_INPUT):
        return registers_to_float(registers[0], registers[1])
    if kind in (ValueKind.INT_HOLDING, ValueKind.INT_INPUT):
        return float(registers[0] & 0xFFFF)
    if kind == ValueKind.COIL:
        return 1.0 if registers[0] else 0.0
    raise ValueError(f"Unknown value kind: {kind!r}")
