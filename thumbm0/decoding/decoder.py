from __future__ import annotations

import logging
from typing import Optional

from ..constants import HALFWORD_MASK
from .bits import extract, unpack
from .forms import DecodedLine, Leaf, data_line, render
from .table import TABLE, Dispatch, InstructionTable

logger = logging.getLogger(__name__)


def _walk(node: Dispatch, value: int, word: int, call_prefix: int) -> DecodedLine:
    for key, children in node.branches:
        fields = extract(value, key)
        if fields is None:
            continue
        remainder, discriminant = fields
        child = children.get(discriminant)
        if child is None:
            break
        if isinstance(child, Leaf):
            operands = remainder >> (16 - len(child.template))
            return render(child, unpack(child.template, operands), call_prefix)
        return _walk(child, remainder, word, call_prefix)
    logger.debug("No encoding matches %04X, rendering as data", word)
    return data_line(word)


def decode(
    word: int, table: Optional[InstructionTable] = None, call_prefix: int = 0
) -> DecodedLine:
    """Decode one halfword.

    ``call_prefix`` is the value carried by a BL prefix halfword decoded
    immediately before ``word``; it only affects the BL suffix form.
    """
    table = table or TABLE
    word &= HALFWORD_MASK
    return _walk(table.root, word, word, call_prefix)
