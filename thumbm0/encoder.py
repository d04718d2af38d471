"""Single-line encoder.

``encode()`` turns one line of assembly into its raw value. The operand-shape
signature is built in reverse source order, as are the numeric operands, and
is looked up in the registry collected when the instruction table was built.
"""

from __future__ import annotations

import logging
import re
from typing import List, NamedTuple, Optional, Union

from .constants import DATA_MNEMONIC, FULL_REGISTER_MNEMONICS
from .decoding.forms import EncodeError
from .decoding.forms import encode as encode_form
from .decoding.table import TABLE, InstructionTable
from .operands import classify

logger = logging.getLogger(__name__)

OperandValue = Union[int, str]

_SPECIAL_LETTERS = re.compile("[SLPH]")


class Encoded(NamedTuple):
    # None when an operand token could not be parsed
    raw: Optional[int]
    mnemonic: str
    operands: List[OperandValue]


def strip_line(line: str) -> str:
    """Drop the comment and any ``label:`` prefix."""
    code = line.split(";", 1)[0]
    if ":" in code:
        code = code.split(":", 1)[1]
    return code.replace("[", "").replace("]", "").strip()


def split_operands(args: str) -> List[str]:
    if "{" in args:
        head, _, tail = args.partition("{")
        tokens = [t for t in head.replace("!", ",").split(",") if t]
        return tokens + ["{" + tail]
    return args.split(",") if args else []


def _encode_data(mnemonic: str, tokens: List[str]) -> Encoded:
    try:
        value = int(tokens[0], 16) if len(tokens) == 1 else None
    except ValueError:
        value = None
    if value is None:
        return Encoded(None, mnemonic, list(tokens) or [""])
    if not 0 <= value <= 0xFFFF:
        raise EncodeError(f"{mnemonic} value {tokens[0]} does not fit a halfword")
    return Encoded(value, mnemonic, [value])


def encode(line: str, table: Optional[InstructionTable] = None) -> Optional[Encoded]:
    """Encode one line of assembly.

    Returns ``None`` for blank and comment-only lines, and an ``Encoded`` with
    ``raw=None`` whose last operand is the offending token when an operand
    cannot be parsed (a branch label, for instance). Raises ``EncodeError``
    for an unknown mnemonic/operand combination or an operand out of range.
    """
    table = table or TABLE
    parts = strip_line(line).split()
    if not parts:
        return None
    mnemonic = parts[0].upper()
    tokens = split_operands("".join(parts[1:]))

    if mnemonic == DATA_MNEMONIC:
        return _encode_data(mnemonic, tokens)

    signature = ""
    operands: List[OperandValue] = []
    for token in tokens:
        operand = classify(token)
        if operand is None:
            operands.append(token)
            return Encoded(None, mnemonic, operands)
        signature = operand.kind + signature
        operands.insert(0, operand.value)

    leaf = table.lookup(mnemonic, signature)
    if leaf is None and mnemonic in FULL_REGISTER_MNEMONICS:
        normalized = _SPECIAL_LETTERS.sub("R", signature)
        logger.debug("%s %r not found, retrying as %r", mnemonic, signature, normalized)
        leaf = table.lookup(mnemonic, normalized)
    if leaf is None:
        raise EncodeError(f"Unknown instruction {mnemonic} with operands {signature!r}")

    values = [int(v) for v in operands]
    try:
        raw = encode_form(leaf, mnemonic, values)
    except ValueError as e:
        raise EncodeError(f"{mnemonic}: {e}") from e
    return Encoded(raw, mnemonic, operands)
