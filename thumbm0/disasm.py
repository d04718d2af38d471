"""Whole-buffer disassembly.

Walks a byte buffer halfword by halfword, keeping literal-pool words out of
the instruction stream and turning PC-relative branches into synthesised
``Q<address>`` labels.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, NamedTuple, Optional, Set

from .coding import Buffer, BufferTooShort, Decoder
from .constants import BASE_ADDRESS, LABEL_PREFIX
from .decoding.decoder import decode
from .decoding.forms import DecodedLine, DisplacementKind, data_line
from .decoding.table import InstructionTable
from .hexfmt import hex16, hex32

logger = logging.getLogger(__name__)


class _Prefix(NamedTuple):
    row: int
    word: int
    column: str
    value: int


class Disassembler:
    def __init__(
        self,
        base_address: int = BASE_ADDRESS,
        name_table: Optional[Mapping[int, str]] = None,
        table: Optional[InstructionTable] = None,
    ) -> None:
        self.base_address = base_address
        self.name_table: Mapping[int, str] = name_table or {}
        self.table = table

    def label(self, address: int) -> str:
        return f"{LABEL_PREFIX}{hex32(address)}"

    def _name_suffix(self, address: int, separator: str) -> str:
        name = self.name_table.get(address)
        return f"{separator}{name}" if name else ""

    def _literal(self, data: Buffer, offset: int, disp: int, pool: Set[int]) -> str:
        address = (offset + disp + 4) & ~2
        pool.update((address, address + 2))
        try:
            value = hex32(Decoder(data, address).unsigned_dword_le())
        except BufferTooShort:
            logger.debug("Literal at +%X lies outside the buffer", address)
            value = "????????"
        return f"0x{hex32(self.base_address + address)}=0x{value}"

    def _branch(
        self,
        decoded: DecodedLine,
        target: int,
        size: int,
        fix_branches: bool,
        targets: Set[int],
    ) -> Optional[str]:
        """Render a branch to ``target``; ``None`` means it must become data."""
        absolute = self.base_address + target
        if not fix_branches:
            return f"{decoded.text}  ;@0x{hex32(absolute)}"
        if target < 0 or target + 2 > size:
            return None
        targets.add(target >> 1)
        return (
            f"{decoded.mnemonic:<4} {self.label(absolute)}  ;->0x{hex32(absolute)}"
            + self._name_suffix(absolute, " ")
        )

    def _with_labels(self, rows: List[Optional[str]], targets: Set[int]) -> Iterable[str]:
        for index, row in enumerate(rows):
            if index in targets:
                absolute = self.base_address + index * 2
                yield f"{self.label(absolute)}:" + self._name_suffix(absolute, "     ;")
            if row is not None:
                yield row

    def disassemble(
        self, data: Buffer, show_addresses: bool = False, fix_branches: bool = True
    ) -> str:
        decoder = Decoder(data)
        # One entry per halfword; None rows are dropped from the listing
        rows: List[Optional[str]] = []
        pool: Set[int] = set()
        targets: Set[int] = set()
        prefix: Optional[_Prefix] = None

        def orphan(pending: Optional[_Prefix]) -> None:
            # A BL prefix that does not end up in a BL line is kept as data
            if pending is not None:
                rows[pending.row] = pending.column + data_line(pending.word).text

        while decoder.remaining() >= 2:
            offset = decoder.get_pos()
            word = decoder.unsigned_word_le()
            column = (
                f":{hex32(self.base_address + offset)} {hex16(word)}  "
                if show_addresses
                else ""
            )
            pending, prefix = prefix, None

            if offset in pool:
                pool.discard(offset)
                orphan(pending)
                rows.append(column + data_line(word).text)
                continue

            decoded = decode(word, self.table, pending.value if pending else 0)
            displacement = decoded.displacement
            if displacement is None:
                orphan(pending)
                rows.append(column + decoded.text)
                continue

            match displacement.kind:
                case DisplacementKind.CALL_PREFIX:
                    orphan(pending)
                    prefix = _Prefix(len(rows), word, column, displacement.value)
                    if displacement.value == 0 and not show_addresses:
                        rows.append(None)
                    else:
                        rows.append(column + decoded.text)
                case DisplacementKind.LITERAL:
                    orphan(pending)
                    comment = self._literal(data, offset, displacement.value, pool)
                    rows.append(f"{column}{decoded.text}  ;{comment}")
                case DisplacementKind.BRANCH | DisplacementKind.CALL:
                    if displacement.kind is DisplacementKind.BRANCH:
                        orphan(pending)
                    row = self._branch(
                        decoded,
                        offset + displacement.value,
                        len(data),
                        fix_branches,
                        targets,
                    )
                    if row is None:
                        if displacement.kind is DisplacementKind.CALL:
                            orphan(pending)
                        row = data_line(word).text
                    rows.append(column + row)

        orphan(prefix)
        if decoder.remaining():
            logger.debug("Ignoring trailing odd byte at +%X", decoder.get_pos())
        return "\n".join(self._with_labels(rows, targets))


def disassemble(
    data: Buffer,
    show_addresses: bool = False,
    fix_branches: bool = True,
    base_address: int = BASE_ADDRESS,
    name_table: Optional[Mapping[int, str]] = None,
) -> str:
    return Disassembler(base_address, name_table).disassemble(
        data, show_addresses, fix_branches
    )
