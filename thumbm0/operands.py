"""Operand token classification.

Each token becomes an :class:`Operand` whose ``kind`` is its signature letter:
``R`` r0-r7, ``H`` r8-r15, ``S``/``L``/``P`` for SP/LR/PC, ``O`` immediate
(``#n`` or a bare number) and ``A`` register list.
"""

from __future__ import annotations

import functools
import os
from typing import List, NamedTuple, Optional

from lark import Lark, Token, Transformer
from lark.exceptions import LarkError

from .constants import LIST_LR, LIST_PC, LR, PC, SP

grammar_path = os.path.join(os.path.dirname(__file__), "operands.lark")
with open(grammar_path, "r") as f:
    operand_grammar = f.read()

operand_parser = Lark(operand_grammar, parser="earley", maybe_placeholders=False)

_SPECIAL = {"SP": SP, "LR": LR, "PC": PC}


class Operand(NamedTuple):
    kind: str
    value: int


def parse_number(text: str) -> int:
    text = text.upper()
    return int(text, 16) if "X" in text else int(text, 10)


class OperandTransformer(Transformer):
    def register(self, items: List[Token]) -> Operand:
        number = int(items[0][1:])
        return Operand("R" if number < 8 else "H", number)

    def special(self, items: List[Token]) -> Operand:
        name = str(items[0])
        return Operand(name[0], _SPECIAL[name])

    def immediate(self, items: List[Token]) -> Operand:
        return Operand("O", parse_number(items[0]))

    def number(self, items: List[Token]) -> Operand:
        return Operand("O", parse_number(items[0]))

    def register_list(self, items: List[Token]) -> Operand:
        mask = 0
        for item in items:
            if item == "LR":
                mask |= LIST_LR
            elif item == "PC":
                mask |= LIST_PC
            else:
                mask |= 1 << int(item[1:])
        return Operand("A", mask)


@functools.lru_cache(maxsize=4096)
def classify(token: str) -> Optional[Operand]:
    """Classify one operand token, or return ``None`` if it is not one."""
    try:
        tree = operand_parser.parse(token.upper())
    except LarkError:
        return None
    return OperandTransformer().transform(tree)
