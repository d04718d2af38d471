"""Operand layouts shared by the decoder and the encoder.

Every leaf of the instruction table names one :class:`Form`. Turning operand
fields into text (:func:`render`) and turning parsed operands into a raw
value (:func:`encode`) are both a ``match`` over that tag, with the leaf's
``opcode``, ``scale``, ``base`` and ``extra`` as parameters.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..constants import HINTS, LIST_LR, LIST_PC, register_name
from ..hexfmt import hex16
from .bits import pack, sign_extend


class EncodeError(Exception):
    pass


class Form(enum.Enum):
    RD_RS_IMM = "Rd,Rs,#imm"
    RD_RS_RN = "Rd,Rs,Rn"
    RD_IMM = "Rd,#imm"
    RD_RS = "Rd,Rs"
    HI_REG = "Rd,Rs (r0-r15)"
    BRANCH_EXCHANGE = "Rs"
    LITERAL_LOAD = "Rd,[PC,#imm]"
    MEM_REG = "Rd,[Rb,Ro]"
    MEM_IMM = "Rd,[Rb,#imm]"
    MEM_BASE = "Rd,[SP|PC,#imm]"
    SP_ADJUST = "SP,#imm"
    REG_LIST = "{rlist}"
    MULTIPLE = "Rb!,{rlist}"
    COND_BRANCH = "cond label"
    SUPERVISOR = "imm"
    BREAKPOINT = "#imm"
    HINT = "-"
    BRANCH = "label"
    CALL_PREFIX = "BL high half"
    CALL = "BL label"


class DisplacementKind(enum.Enum):
    LITERAL = "PC+ADDR"
    BRANCH = "PC+B"
    CALL = "PC+BL"
    # High part of a BL offset; the caller hands it to the next decode
    CALL_PREFIX = "BL-HI"


@dataclass(frozen=True)
class Displacement:
    kind: DisplacementKind
    value: int


@dataclass(frozen=True)
class DecodedLine:
    mnemonic: str
    text: str
    displacement: Optional[Displacement] = None


@dataclass(frozen=True)
class Leaf:
    template: str
    form: Form
    mnemonic: str
    # None marks a decode-only leaf
    signature: Optional[str] = None
    aliases: Tuple[str, ...] = ()
    scale: int = 1
    base: str = ""
    extra: int = 0
    # Filled in from the leaf's position in the table
    opcode: int = 0

    @property
    def encodings(self) -> Tuple[str, ...]:
        if self.signature is None:
            return ()
        return (self.mnemonic,) + self.aliases


# ALU "CMP Rd,Rs" (010000 1010 sss ddd), used when both registers are low
_CMP_LOW = 0x4280

_HINT_NAMES = {code: name for name, code in HINTS.items()}

_LIST_SPECIAL = {"PUSH": LIST_LR, "POP": LIST_PC}


def line(
    mnemonic: str, operands: str = "", displacement: Optional[Displacement] = None
) -> DecodedLine:
    text = f"{mnemonic:<4} {operands}" if operands else mnemonic
    return DecodedLine(mnemonic, text, displacement)


def data_line(word: int) -> DecodedLine:
    return line("DCW", hex16(word))


def register_list(mask: int) -> str:
    names = [register_name(i) for i in range(8) if mask & (1 << i)]
    if mask & LIST_LR:
        names.append("LR")
    if mask & LIST_PC:
        names.append("PC")
    return "{" + ",".join(names) + "}"


def render(leaf: Leaf, fields: Sequence[int], call_prefix: int = 0) -> DecodedLine:
    """Render the operand ``fields`` extracted with ``leaf.template``.

    ``call_prefix`` is the high offset half carried by the BL prefix halfword
    decoded just before this one (0 when there was none).
    """
    name = leaf.mnemonic
    r = register_name
    match leaf.form:
        case Form.RD_RS_IMM:
            imm, rs, rd = fields
            return line(name, f"{r(rd)},{r(rs)},#{imm}")
        case Form.RD_RS_RN:
            rn, rs, rd = fields
            return line(name, f"{r(rd)},{r(rs)},{r(rn)}")
        case Form.RD_IMM:
            rd, imm = fields
            return line(name, f"{r(rd)},#{imm}")
        case Form.RD_RS:
            rs, rd = fields
            return line(name, f"{r(rd)},{r(rs)}")
        case Form.HI_REG:
            high, rs, rd = fields
            return line(name, f"{r(rd + high * 8)},{r(rs)}")
        case Form.BRANCH_EXCHANGE:
            rs, _ = fields
            return line(name, r(rs))
        case Form.LITERAL_LOAD:
            rd, imm = fields
            offset = imm * 4
            return line(
                name,
                f"{r(rd + leaf.extra)},[PC,#{offset}]",
                Displacement(DisplacementKind.LITERAL, offset),
            )
        case Form.MEM_REG:
            ro, rb, rd = fields
            return line(name, f"{r(rd)},[{r(rb)},{r(ro)}]")
        case Form.MEM_IMM:
            imm, rb, rd = fields
            return line(name, f"{r(rd)},[{r(rb)},#{imm * leaf.scale}]")
        case Form.MEM_BASE:
            rd, imm = fields
            return line(name, f"{r(rd)},[{leaf.base},#{imm * leaf.scale}]")
        case Form.SP_ADJUST:
            (imm,) = fields
            return line(name, f"SP,#{imm * leaf.scale}")
        case Form.REG_LIST:
            (mask,) = fields
            return line(name, register_list(mask | leaf.extra))
        case Form.MULTIPLE:
            rb, mask = fields
            return line(name, f"{r(rb)}!,{register_list(mask)}")
        case Form.COND_BRANCH:
            (imm,) = fields
            disp = (sign_extend(imm, 8) << 1) + 4
            return line(
                name, str(disp), Displacement(DisplacementKind.BRANCH, disp)
            )
        case Form.SUPERVISOR:
            (imm,) = fields
            return line(name, str(imm))
        case Form.BREAKPOINT:
            (imm,) = fields
            return line(name, f"#{imm}")
        case Form.HINT:
            (imm,) = fields
            return line(_HINT_NAMES.get(imm, "NOP"))
        case Form.BRANCH:
            (imm,) = fields
            disp = (sign_extend(imm, 11) << 1) + 4
            return line(
                name, str(disp), Displacement(DisplacementKind.BRANCH, disp)
            )
        case Form.CALL_PREFIX:
            (imm,) = fields
            return DecodedLine(
                name, f";{imm}", Displacement(DisplacementKind.CALL_PREFIX, imm)
            )
        case Form.CALL:
            (imm,) = fields
            # 23-bit offset, sign taken from bit 10 of the prefix half
            disp = sign_extend((call_prefix << 12) | (imm << 1), 23) + 2
            return line(name, str(disp), Displacement(DisplacementKind.CALL, disp))
        case _:
            raise NotImplementedError(f"Unknown form {leaf.form}")


def _scaled(value: int, scale: int) -> int:
    if value % scale:
        raise ValueError(f"offset {value} is not a multiple of {scale}")
    return value // scale


def _branch_field(disp: int, width: int, bias: int) -> int:
    if disp % 2:
        raise ValueError(f"branch displacement {disp} is odd")
    field = (disp >> 1) - bias
    limit = 1 << (width - 1)
    if not -limit <= field < limit:
        raise ValueError(f"branch displacement {disp} out of range")
    return field & ((1 << width) - 1)


def encode(leaf: Leaf, mnemonic: str, operands: List[int]) -> int:
    """Pack ``operands`` (in reversed source order) into a raw value.

    Raises ``ValueError`` when an operand does not fit.
    """
    template = leaf.template
    match leaf.form:
        case Form.RD_RS_IMM | Form.RD_RS_RN | Form.MEM_REG:
            return leaf.opcode | pack(template, operands)
        case Form.RD_IMM:
            imm, rd = operands
            return leaf.opcode | pack(template, (rd, imm))
        case Form.RD_RS:
            rs, rd = operands
            return leaf.opcode | pack(template, (rs, rd))
        case Form.HI_REG:
            rs, rd = operands
            if mnemonic == "CMP" and rs < 8 and rd < 8:
                return _CMP_LOW | pack("sssddd", (rs, rd))
            return leaf.opcode | pack(template, (rd >> 3, rs, rd & 7))
        case Form.BRANCH_EXCHANGE:
            (rs,) = operands
            return leaf.opcode | pack(template, (rs, 0))
        case Form.LITERAL_LOAD:
            imm, _, rd = operands
            # Rd spills into the bit the table uses to split r0-r3 and r4-r7
            return leaf.opcode | pack("dddoooooooo", (rd, _scaled(imm, 4)))
        case Form.MEM_IMM:
            imm, rb, rd = operands
            return leaf.opcode | pack(template, (_scaled(imm, leaf.scale), rb, rd))
        case Form.MEM_BASE:
            imm, _, rd = operands
            return leaf.opcode | pack(template, (rd, _scaled(imm, leaf.scale)))
        case Form.SP_ADJUST:
            imm, _ = operands
            return leaf.opcode | pack(template, (_scaled(imm, leaf.scale),))
        case Form.REG_LIST:
            (mask,) = operands
            special = _LIST_SPECIAL[mnemonic]
            if mask & ~(0xFF | special):
                raise ValueError(f"{mnemonic} cannot take {register_list(mask)}")
            return leaf.opcode | (0x100 if mask & special else 0) | (mask & 0xFF)
        case Form.MULTIPLE:
            mask, rb = operands
            if mask & ~0xFF:
                raise ValueError(f"{mnemonic} takes r0-r7 only")
            return leaf.opcode | pack(template, (rb, mask))
        case Form.COND_BRANCH:
            (disp,) = operands
            return leaf.opcode | _branch_field(disp, 8, 2)
        case Form.SUPERVISOR | Form.BREAKPOINT:
            return leaf.opcode | pack(template, operands)
        case Form.HINT:
            return leaf.opcode | HINTS[mnemonic]
        case Form.BRANCH:
            (disp,) = operands
            return leaf.opcode | _branch_field(disp, 11, 2)
        case Form.CALL:
            (disp,) = operands
            offset = _branch_field(disp, 22, 1)
            high = (leaf.opcode & ~0x0800) | (offset >> 11)
            low = leaf.opcode | (offset & 0x7FF)
            return (high << 16) | low
        case _:
            raise EncodeError(f"{mnemonic} has no encoding for form {leaf.form.name}")
