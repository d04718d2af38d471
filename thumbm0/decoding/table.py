"""The Thumb instruction table.

``THUMB_LAYOUT`` is a nested mapping: each key is a bit template whose
single variable group is the discriminant, each value maps discriminants to
either a :class:`Leaf` or another layout for the following bits. Keys are
tried in declaration order. :func:`build_table` turns the layout into an
immutable :class:`InstructionTable`, computing every leaf's opcode from its
position and collecting the mnemonic/signature registry the encoder uses.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ..constants import ALU_OPS, CONDITIONS, LIST_LR, LIST_PC
from .bits import field_widths
from .forms import Form, Leaf

logger = logging.getLogger(__name__)


class TableError(Exception):
    pass


@dataclass(frozen=True)
class Dispatch:
    branches: Tuple[Tuple[str, Mapping[int, "Node"]], ...]


Node = Union[Leaf, Dispatch]


@dataclass(frozen=True)
class InstructionTable:
    root: Dispatch
    registry: Mapping[str, Mapping[str, Leaf]]

    def lookup(self, mnemonic: str, signature: str) -> Optional[Leaf]:
        return self.registry.get(mnemonic, {}).get(signature)

    def mnemonics(self) -> List[str]:
        return sorted(self.registry)

    def describe(self) -> List[Dict[str, Any]]:
        rows = []
        for mnemonic in self.mnemonics():
            for signature, leaf in sorted(self.registry[mnemonic].items()):
                rows.append(
                    {
                        "mnemonic": mnemonic,
                        "signature": signature,
                        "opcode": leaf.opcode,
                        "template": leaf.template,
                        "form": leaf.form.name,
                    }
                )
        return rows


def _alu_ops() -> Dict[int, Leaf]:
    # CMP Rd,Rs is encoded through the high-register form, which falls back
    # to this layout when both registers are low
    return {
        i: Leaf("sssddd", Form.RD_RS, name, None if name == "CMP" else "RR")
        for i, name in enumerate(ALU_OPS)
    }


def _conditional_branches() -> Dict[int, Leaf]:
    branches = {
        i: Leaf("oooooooo", Form.COND_BRANCH, f"B{cond}", "O")
        for i, cond in enumerate(CONDITIONS)
    }
    branches[15] = Leaf("oooooooo", Form.SUPERVISOR, "SWI", "O", aliases=("SVC",))
    return branches


THUMB_LAYOUT: Dict[str, Dict[int, Any]] = {
    "000mm": {
        0: Leaf("ooooosssddd", Form.RD_RS_IMM, "LSL", "ORR"),
        1: Leaf("ooooosssddd", Form.RD_RS_IMM, "LSR", "ORR"),
        2: Leaf("ooooosssddd", Form.RD_RS_IMM, "ASR", "ORR"),
        3: {
            "mm": {
                0: Leaf("nnnsssddd", Form.RD_RS_RN, "ADD", "RRR"),
                1: Leaf("nnnsssddd", Form.RD_RS_RN, "SUB", "RRR"),
                2: Leaf("ooosssddd", Form.RD_RS_IMM, "ADD", "ORR"),
                3: Leaf("ooosssddd", Form.RD_RS_IMM, "SUB", "ORR"),
            }
        },
    },
    "001mm": {
        0: Leaf("dddoooooooo", Form.RD_IMM, "MOV", "OR"),
        1: Leaf("dddoooooooo", Form.RD_IMM, "CMP", "OR"),
        2: Leaf("dddoooooooo", Form.RD_IMM, "ADD", "OR"),
        3: Leaf("dddoooooooo", Form.RD_IMM, "SUB", "OR"),
    },
    "0100mm": {
        0: {"mmmm": _alu_ops()},
        1: {
            "mm": {
                0: Leaf("hssssddd", Form.HI_REG, "ADD", "RR"),
                1: Leaf("hssssddd", Form.HI_REG, "CMP", "RR"),
                2: Leaf("hssssddd", Form.HI_REG, "MOV", "RR"),
                3: {
                    "m": {
                        0: Leaf("ssssddd", Form.BRANCH_EXCHANGE, "BX", "R"),
                        1: Leaf("ssssddd", Form.BRANCH_EXCHANGE, "BLX", "R"),
                    }
                },
            }
        },
        # The discriminant's low bit is the top bit of Rd
        2: Leaf("ddoooooooo", Form.LITERAL_LOAD, "LDR", "OPR"),
        3: Leaf("ddoooooooo", Form.LITERAL_LOAD, "LDR", extra=4),
    },
    "0101mmm": {
        0: Leaf("ooobbbddd", Form.MEM_REG, "STR", "RRR"),
        1: Leaf("ooobbbddd", Form.MEM_REG, "STRH", "RRR"),
        2: Leaf("ooobbbddd", Form.MEM_REG, "STRB", "RRR"),
        3: Leaf("ooobbbddd", Form.MEM_REG, "LDSB", "RRR"),
        4: Leaf("ooobbbddd", Form.MEM_REG, "LDR", "RRR"),
        5: Leaf("ooobbbddd", Form.MEM_REG, "LDRH", "RRR"),
        6: Leaf("ooobbbddd", Form.MEM_REG, "LDRB", "RRR"),
        7: Leaf("ooobbbddd", Form.MEM_REG, "LDSH", "RRR"),
    },
    "011mm": {
        0: Leaf("ooooobbbddd", Form.MEM_IMM, "STR", "ORR", scale=4),
        1: Leaf("ooooobbbddd", Form.MEM_IMM, "LDR", "ORR", scale=4),
        2: Leaf("ooooobbbddd", Form.MEM_IMM, "STRB", "ORR"),
        3: Leaf("ooooobbbddd", Form.MEM_IMM, "LDRB", "ORR"),
    },
    "100mm": {
        0: Leaf("ooooobbbddd", Form.MEM_IMM, "STRH", "ORR", scale=2),
        1: Leaf("ooooobbbddd", Form.MEM_IMM, "LDRH", "ORR", scale=2),
        2: Leaf("dddoooooooo", Form.MEM_BASE, "STR", "OSR", scale=4, base="SP"),
        3: Leaf("dddoooooooo", Form.MEM_BASE, "LDR", "OSR", scale=4, base="SP"),
    },
    "1010m": {
        0: Leaf("dddoooooooo", Form.MEM_BASE, "ADD", "OPR", scale=4, base="PC"),
        1: Leaf("dddoooooooo", Form.MEM_BASE, "ADD", "OSR", scale=4, base="SP"),
    },
    "1011mmmm": {
        0: {
            "m": {
                0: Leaf("ooooooo", Form.SP_ADJUST, "ADD", "OS", scale=4),
                1: Leaf("ooooooo", Form.SP_ADJUST, "SUB", "OS", scale=4),
            }
        },
        2: {
            "mm": {
                0: Leaf("sssddd", Form.RD_RS, "SXTH", "RR"),
                1: Leaf("sssddd", Form.RD_RS, "SXTB", "RR"),
                2: Leaf("sssddd", Form.RD_RS, "UXTH", "RR"),
                3: Leaf("sssddd", Form.RD_RS, "UXTB", "RR"),
            }
        },
        4: Leaf("rrrrrrrr", Form.REG_LIST, "PUSH", "A"),
        5: Leaf("rrrrrrrr", Form.REG_LIST, "PUSH", extra=LIST_LR),
        10: {"mm": {0: Leaf("sssddd", Form.RD_RS, "REV", "RR")}},
        12: Leaf("rrrrrrrr", Form.REG_LIST, "POP", "A"),
        13: Leaf("rrrrrrrr", Form.REG_LIST, "POP", extra=LIST_PC),
        14: Leaf("oooooooo", Form.BREAKPOINT, "BKPT", "O"),
        15: Leaf(
            "oooooooo",
            Form.HINT,
            "NOP",
            "",
            aliases=("YIELD", "WFE", "WFI", "SEV"),
        ),
    },
    "1100m": {
        0: Leaf("bbboooooooo", Form.MULTIPLE, "STM", "AR"),
        1: Leaf("bbboooooooo", Form.MULTIPLE, "LDM", "AR"),
    },
    "1101mmmm": _conditional_branches(),
    "1110m": {
        0: Leaf("ooooooooooo", Form.BRANCH, "B", "O"),
    },
    "1111m": {
        0: Leaf("ooooooooooo", Form.CALL_PREFIX, "BL"),
        1: Leaf("ooooooooooo", Form.CALL, "BL", "O"),
    },
}


def _discriminant_bits(key: str, discriminant: int) -> str:
    (width,) = field_widths(key)
    if not 0 <= discriminant < (1 << width):
        raise TableError(f"discriminant {discriminant} does not fit key {key!r}")
    bits = iter(format(discriminant, f"0{width}b"))
    return "".join(c if c in "01" else next(bits) for c in key)


class _Builder:
    def __init__(self) -> None:
        self.registry: Dict[str, Dict[str, Leaf]] = {}
        self.leaves = 0

    def dispatch(self, layout: Mapping[str, Mapping[int, Any]], prefix: str) -> Dispatch:
        branches = []
        for key, children in layout.items():
            built: Dict[int, Node] = {}
            for discriminant, child in children.items():
                path = prefix + _discriminant_bits(key, discriminant)
                if isinstance(child, Leaf):
                    built[discriminant] = self.leaf(child, path)
                else:
                    built[discriminant] = self.dispatch(child, path)
            branches.append((key, MappingProxyType(built)))
        return Dispatch(tuple(branches))

    def leaf(self, leaf: Leaf, path: str) -> Leaf:
        if set(leaf.template) & {"0", "1"}:
            raise TableError(
                f"{leaf.mnemonic} template {leaf.template!r} has fixed bits"
            )
        if len(path) + len(leaf.template) != 16:
            raise TableError(
                f"{leaf.mnemonic} at {path!r} with {leaf.template!r} is not 16 bits"
            )
        placed = dataclasses.replace(leaf, opcode=int(path, 2) << len(leaf.template))
        for mnemonic in placed.encodings:
            signatures = self.registry.setdefault(mnemonic, {})
            if placed.signature in signatures:
                raise TableError(
                    f"duplicate encoding for {mnemonic} {placed.signature!r}"
                )
            signatures[placed.signature] = placed
        self.leaves += 1
        return placed


def build_table(layout: Mapping[str, Mapping[int, Any]] = THUMB_LAYOUT) -> InstructionTable:
    builder = _Builder()
    root = builder.dispatch(layout, "")
    registry = MappingProxyType(
        {m: MappingProxyType(s) for m, s in builder.registry.items()}
    )
    logger.debug(
        "Built instruction table: %d leaves, %d mnemonics",
        builder.leaves,
        len(registry),
    )
    return InstructionTable(root, registry)


TABLE = build_table()
