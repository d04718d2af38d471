"""Bit-pattern templates.

A template is a string over ``0``, ``1`` and letters, most significant bit
first. ``0``/``1`` are fixed bits; a run of the same letter is one variable
field and a change of letter starts the next field. Fixed bits between two
runs of the same letter do not split the field.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


def extract(value: int, template: str) -> Optional[List[int]]:
    """Match ``value`` against ``template`` from bit 15 downwards.

    Returns ``None`` when a fixed bit disagrees. Otherwise element 0 holds the
    low 16 bits left over after the template was consumed (left aligned, so
    a nested template can continue at bit 15) and the remaining elements are
    the field values in template order.
    """
    fields = [0]
    current: Optional[str] = None
    acc = 0
    for char in template:
        value <<= 1
        bit = (value >> 16) & 1
        if char == "0" or char == "1":
            if bit != int(char):
                return None
            continue
        if char != current:
            if current is not None:
                fields.append(acc)
            current, acc = char, 0
        acc = (acc << 1) | bit
    if current is not None:
        fields.append(acc)
    fields[0] = value & 0xFFFF
    return fields


def field_widths(template: str) -> List[int]:
    widths: List[int] = []
    current: Optional[str] = None
    for char in template:
        if char == "0" or char == "1":
            continue
        if char != current:
            widths.append(0)
            current = char
        widths[-1] += 1
    return widths


def pack(template: str, values: Sequence[int]) -> int:
    """Inverse of :func:`extract` for a whole template.

    Raises ``ValueError`` when a value does not fit its field.
    """
    widths = field_widths(template)
    if len(values) != len(widths):
        raise ValueError(
            f"template {template!r} has {len(widths)} fields, got {len(values)} values"
        )
    for value, width in zip(values, widths):
        if not 0 <= value < (1 << width):
            raise ValueError(f"value {value} does not fit a {width}-bit field")

    result = 0
    index = -1
    current: Optional[str] = None
    remaining = 0
    for char in template:
        result <<= 1
        if char == "0" or char == "1":
            result |= int(char)
            continue
        if char != current:
            index += 1
            current = char
            remaining = widths[index]
        remaining -= 1
        result |= (values[index] >> remaining) & 1
    return result


def sign_extend(value: int, bits: int) -> int:
    sign = 1 << (bits - 1)
    return (value & (sign - 1)) - (value & sign)


def unpack(template: str, value: int) -> List[int]:
    """Inverse of :func:`pack` for a template made of variable fields only."""
    fields = []
    shift = len(template)
    for width in field_widths(template):
        shift -= width
        fields.append((value >> shift) & ((1 << width) - 1))
    return fields
