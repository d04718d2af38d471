import logging
from textwrap import dedent
from typing import List, NamedTuple

import pytest

from .asm import Assembler, AssemblerError, as_binfile, assemble


class AssemblerTestCase(NamedTuple):
    test_id: str
    asm_code: str
    expected: str


assembler_test_cases: List[AssemblerTestCase] = [
    AssemblerTestCase(
        test_id="simple_instructions",
        asm_code="""
            ; A very simple program
            MOV R0, #1
            ADD R0, R0, R1
            NOP
        """,
        expected="01 20 40 18 00 BF",
    ),
    AssemblerTestCase(
        test_id="backward_loop",
        asm_code="""
            LOOP: ADD R0,R0,#1
            CMP R0,#10
            BNE LOOP
        """,
        expected="40 1C 0A 28 FC D1",
    ),
    AssemblerTestCase(
        test_id="forward_branch_over_comment",
        asm_code="""
                B done     ; skip the next instruction

                MOV R1,#2
            done:
                BX LR
        """,
        expected="00 E0 02 21 70 47",
    ),
    AssemblerTestCase(
        test_id="branch_to_own_line",
        asm_code="""
            spin: B spin
        """,
        expected="FE E7",
    ),
    AssemblerTestCase(
        test_id="wide_call",
        asm_code="""
            BL TARGET
            NOP
            TARGET: NOP
        """,
        expected="00 F0 01 F8 00 BF 00 BF",
    ),
    AssemblerTestCase(
        test_id="call_backwards",
        asm_code="""
            func: BX LR
            BL func
        """,
        expected="70 47 FF F7 FD FF",
    ),
    AssemblerTestCase(
        test_id="label_on_its_own_line",
        asm_code="""
            start:
                PUSH {R4,LR}
                BEQ start
                POP {R4,PC}
        """,
        expected="10 B5 FD D0 10 BD",
    ),
    AssemblerTestCase(
        test_id="literal_data",
        asm_code="""
                LDR R0,[PC,#0]
                NOP
                DCW BEEF
                DCW DEAD
        """,
        expected="00 48 00 BF EF BE AD DE",
    ),
    AssemblerTestCase(
        test_id="numeric_branch_operand",
        asm_code="""
            BNE -4
        """,
        expected="FC D1",
    ),
    AssemblerTestCase(
        test_id="non_branch_b_mnemonics",
        asm_code="""
            BIC R0,R1
            BKPT #0
            BLX R2
        """,
        expected="88 43 00 BE 90 47",
    ),
]


@pytest.mark.parametrize(
    "case", assembler_test_cases, ids=[c.test_id for c in assembler_test_cases]
)
def test_assembler(case: AssemblerTestCase) -> None:
    data = Assembler().assemble(dedent(case.asm_code))
    assert data.hex(" ").upper() == case.expected


def test_labels_are_case_sensitive(caplog: pytest.LogCaptureFixture) -> None:
    source = "Loop: NOP\nB loop\nB Loop\n"
    with caplog.at_level(logging.WARNING):
        data = assemble(source)
    # "loop" is undefined, so only NOP and the second branch remain
    assert data.hex(" ").upper() == "00 BF FD E7"
    assert "undefined label 'loop'" in caplog.text


def test_bad_lines_are_skipped(caplog: pytest.LogCaptureFixture) -> None:
    source = dedent(
        """
        MOV R0,#1
        FOO R0,R1
        MOV R0,bogus
        MOV R1,#2
        """
    )
    with caplog.at_level(logging.WARNING):
        data = assemble(source)
    assert data.hex(" ").upper() == "01 20 02 21"
    assert "FOO" in caplog.text
    assert "bogus" in caplog.text


def test_strict_mode_reports_line() -> None:
    with pytest.raises(AssemblerError, match="on line 2") as excinfo:
        Assembler(strict=True).assemble("NOP\nFOO R0,R1\n")
    assert "> FOO R0,R1" in str(excinfo.value)


def test_strict_mode_undefined_label() -> None:
    with pytest.raises(AssemblerError, match="undefined label 'nowhere'"):
        Assembler(strict=True).assemble("B nowhere\n")


def test_dropped_branch_does_not_shift_labels(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        data = assemble("B L\nB nowhere\nL: NOP\n")
    # B L lands on the NOP right after it once the bad branch is gone
    assert data.hex(" ").upper() == "FF E7 00 BF"
    assert "undefined label 'nowhere'" in caplog.text


FAR_BRANCH_SOURCE = "B L\nBEQ far\nL: NOP\n" + "NOP\n" * 200 + "far: NOP\n"


def test_out_of_range_branch_is_dropped(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        data = assemble(FAR_BRANCH_SOURCE)
    assert len(data) == 2 * 203
    assert data[:4].hex(" ").upper() == "FF E7 00 BF"
    assert "out of range" in caplog.text


def test_strict_mode_out_of_range_branch() -> None:
    with pytest.raises(AssemblerError, match="on line 2: BEQ: .*out of range"):
        Assembler(strict=True).assemble(FAR_BRANCH_SOURCE)


@pytest.mark.parametrize(
    "source,expected",
    [
        ("r2: NOP\nB r2\n", "00 BF FD E7"),
        ("lr: B lr\n", "FE E7"),
        ("pc: NOP\nBL pc\n", "00 BF FF F7 FD FF"),
    ],
    ids=["low_register", "link_register", "call"],
)
def test_register_named_labels(source: str, expected: str) -> None:
    assert assemble(source).hex(" ").upper() == expected


def test_duplicate_label() -> None:
    source = "a: NOP\na: NOP\nB a\n"
    assert assemble(source).hex(" ").upper() == "00 BF 00 BF FD E7"
    with pytest.raises(AssemblerError, match="duplicate label 'a'"):
        Assembler(strict=True).assemble(source)


def test_symbols_are_recorded() -> None:
    assembler = Assembler()
    assembler.assemble("NOP\nBL f\nmid: NOP\nf: BX LR\n")
    assert assembler.symbols == {"mid": 6, "f": 8}


def test_without_label_resolution() -> None:
    source = "LOOP: MOV R0,#1\nBNE LOOP\nBNE -4\n"
    data = assemble(source, resolve_labels=False)
    assert data.hex(" ").upper() == "01 20 FC D1"


def test_dcw_f800_is_not_wide() -> None:
    assert assemble("DCW F800\n") == bytes([0x00, 0xF8])


def test_empty_source() -> None:
    assert assemble("") == b""
    assert assemble("; nothing here\n\n") == b""


def test_assemble_binfile() -> None:
    binfile = Assembler().assemble_binfile("MOV R0,#1\nBX LR\n", 0x08000000)
    assert binfile.minimum_address == 0x08000000
    assert bytes(binfile.as_binary()) == bytes([0x01, 0x20, 0x70, 0x47])
    assert ":0400000001207047" in as_binfile(b"\x01\x20\x70\x47", 0).as_ihex()
