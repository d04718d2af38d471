from __future__ import annotations

import logging
from typing import Dict, List, NamedTuple, Optional, Set, Tuple

import bincopy  # type: ignore[import-untyped]

from .coding import Encoder, is_wide
from .constants import BASE_ADDRESS, NON_BRANCH_B_MNEMONICS
from .decoding.forms import EncodeError
from .decoding.table import InstructionTable
from .encoder import encode, strip_line
from .operands import classify

logger = logging.getLogger(__name__)


class AssemblerError(Exception):
    pass


def as_binfile(data: bytes, base_address: int = BASE_ADDRESS) -> bincopy.BinFile:
    binfile = bincopy.BinFile()
    binfile.add_binary(data, base_address)
    return binfile


class _BranchFixup(NamedTuple):
    index: int
    mnemonic: str
    label: str
    address: int


def _is_branch(mnemonic: str) -> bool:
    return mnemonic.startswith("B") and mnemonic not in NON_BRANCH_B_MNEMONICS


def _branch_label(source: str) -> Optional[Tuple[str, str]]:
    """Return ``(mnemonic, label)`` for a branch whose operand is not a number.

    Label names shadow register names here, so ``B lr`` branches to ``lr:``.
    """
    parts = strip_line(source).split()
    if len(parts) != 2:
        return None
    mnemonic = parts[0].upper()
    if not _is_branch(mnemonic):
        return None
    operand = classify(parts[1])
    if operand is not None and operand.kind == "O":
        return None
    return mnemonic, parts[1]


class Assembler:
    """
    A two-pass Thumb assembler.

    The first pass assigns addresses, records labels and rewrites branch
    labels into byte displacements; the second pass encodes every remaining
    line. Lines that cannot be encoded are skipped with a warning, unless the
    assembler is strict, in which case they raise ``AssemblerError``.
    """

    def __init__(
        self, strict: bool = False, table: Optional[InstructionTable] = None
    ) -> None:
        self.strict = strict
        self.table = table
        self.symbols: Dict[str, int] = {}

    def _skip(self, number: int, source: str, reason: str) -> None:
        if self.strict:
            raise AssemblerError(f"on line {number + 1}: {reason}\n> {source.strip()}")
        logger.warning("Skipping line %d (%s): %s", number + 1, reason, source.strip())

    def _define_label(self, number: int, source: str, address: int, report: bool) -> None:
        code = source.split(";", 1)[0]
        if ":" not in code:
            return
        label = code.split(":", 1)[0].strip()
        if not label:
            return
        if report and label in self.symbols:
            if self.strict:
                raise AssemblerError(
                    f"on line {number + 1}: duplicate label '{label}'\n> {source.strip()}"
                )
            logger.warning("Label %s redefined on line %d", label, number + 1)
        self.symbols[label] = address

    def _drop(self, number: int, source: str, reason: str, dropped: Set[int]) -> None:
        self._skip(number, source, reason)
        dropped.add(number)

    def _layout(
        self, lines: List[str], dropped: Set[int], report: bool
    ) -> List[_BranchFixup]:
        """Assign addresses to every line not in ``dropped`` and record labels.

        Lines that cannot be encoded whatever the layout are added to
        ``dropped``. Returns the symbolic branches still to be resolved.
        """
        self.symbols = {}
        fixups: List[_BranchFixup] = []
        address = 0

        for i, source in enumerate(lines):
            self._define_label(i, source, address, report)
            if i in dropped:
                continue
            branch = _branch_label(source)
            if branch is not None:
                mnemonic, label = branch
                if mnemonic == "BL":
                    address += 2
                fixups.append(_BranchFixup(i, mnemonic, label, address))
                address += 2
                continue
            try:
                encoded = encode(source, self.table)
            except EncodeError as e:
                self._drop(i, source, str(e), dropped)
                continue
            if encoded is None:
                dropped.add(i)
                continue
            if encoded.raw is None:
                token = encoded.operands[-1]
                self._drop(i, source, f"cannot parse operand '{token}'", dropped)
                continue
            address += 4 if is_wide(encoded.raw) else 2
        return fixups

    def _first_pass(self, lines: List[str]) -> List[Optional[str]]:
        """Assign addresses and rewrite symbolic branches.

        A branch that cannot be resolved (undefined label, target out of
        reach) is dropped and the addresses are assigned again without it,
        until every remaining branch resolves. Returns the program with
        deleted lines replaced by ``None``.
        """
        dropped: Set[int] = set()
        report = True
        while True:
            fixups = self._layout(lines, dropped, report)
            report = False
            program: List[Optional[str]] = [
                None if i in dropped else source for i, source in enumerate(lines)
            ]
            failed = False
            for fixup in fixups:
                source = lines[fixup.index]
                target = self.symbols.get(fixup.label)
                if target is None:
                    self._drop(
                        fixup.index, source, f"undefined label '{fixup.label}'", dropped
                    )
                    failed = True
                    continue
                rewritten = f"{fixup.mnemonic} {target - fixup.address}"
                try:
                    encode(rewritten, self.table)
                except EncodeError as e:
                    self._drop(fixup.index, source, str(e), dropped)
                    failed = True
                    continue
                program[fixup.index] = rewritten
            if not failed:
                break

        for fixup in fixups:
            logger.debug(
                "%s %s resolved to %s on line %d",
                fixup.mnemonic,
                fixup.label,
                program[fixup.index],
                fixup.index + 1,
            )
        return program

    def _second_pass(self, program: List[Optional[str]]) -> bytearray:
        encoder = Encoder()
        for i, source in enumerate(program):
            if source is None:
                continue
            try:
                encoded = encode(source, self.table)
            except EncodeError as e:
                self._skip(i, source, str(e))
                continue
            if encoded is None:
                continue
            if encoded.raw is None:
                self._skip(i, source, f"cannot parse operand '{encoded.operands[-1]}'")
                continue
            encoder.instruction(encoded.raw)
        return encoder.buf

    def assemble(self, source_text: str, resolve_labels: bool = True) -> bytes:
        """Assembles the given source text into raw little-endian bytes."""
        lines = source_text.splitlines()
        program: List[Optional[str]] = (
            self._first_pass(lines) if resolve_labels else list(lines)
        )
        return bytes(self._second_pass(program))

    def assemble_binfile(
        self,
        source_text: str,
        base_address: int = BASE_ADDRESS,
        resolve_labels: bool = True,
    ) -> bincopy.BinFile:
        return as_binfile(self.assemble(source_text, resolve_labels), base_address)


def assemble(source_text: str, resolve_labels: bool = True) -> bytes:
    return Assembler().assemble(source_text, resolve_labels)
