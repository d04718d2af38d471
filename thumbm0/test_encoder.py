from typing import List, NamedTuple

import pytest

from .decoding.forms import EncodeError
from .encoder import Encoded, encode, split_operands, strip_line


class EncodeCase(NamedTuple):
    test_id: str
    line: str
    raw: int


encode_cases: List[EncodeCase] = [
    EncodeCase("mov_imm", "MOV R0, #1", 0x2001),
    EncodeCase("add_three_regs", "ADD R0, R0, R1", 0x1840),
    EncodeCase("add_three_regs_lower", "add r0,r1,r0", 0x1808),
    EncodeCase("add_imm3", "ADD R0,R0,#1", 0x1C40),
    EncodeCase("lsl_imm", "LSL R1,R2,#3", 0x00D1),
    EncodeCase("cmp_imm", "CMP R0,#10", 0x280A),
    EncodeCase("cmp_low_regs_use_alu_form", "CMP R0,R1", 0x4288),
    EncodeCase("cmp_high_source", "CMP R0,R8", 0x4540),
    EncodeCase("cmp_high_dest", "CMP R8,R0", 0x4580),
    EncodeCase("mov_low_regs_use_high_form", "MOV R0,R1", 0x4608),
    EncodeCase("mov_high", "MOV R8,R8", 0x46C0),
    EncodeCase("add_sp_register", "ADD R0,SP", 0x4468),
    EncodeCase("mov_pc_lr", "MOV PC,LR", 0x46F7),
    EncodeCase("alu_mul", "MUL R2,R3", 0x435A),
    EncodeCase("bx_lr", "BX LR", 0x4770),
    EncodeCase("blx_reg", "BLX R3", 0x4798),
    EncodeCase("ldr_literal", "LDR R3,[PC,#8]", 0x4B02),
    EncodeCase("ldr_literal_high_rd", "LDR R7, [PC, #4]", 0x4F01),
    EncodeCase("ldr_reg_offset", "LDR R0,[R1,R2]", 0x5888),
    EncodeCase("ldr_imm_offset", "LDR R0,[R1,#4]", 0x6848),
    EncodeCase("strb_imm_offset", "STRB R2,[R3,#31]", 0x77DA),
    EncodeCase("ldrh_imm_offset", "LDRH R0,[R1,#2]", 0x8848),
    EncodeCase("str_sp", "STR R0,[SP,#4]", 0x9001),
    EncodeCase("add_pc_relative", "ADD R0,[PC,#8]", 0xA002),
    EncodeCase("add_sp_relative", "ADD R1,SP,#1020", 0xA9FF),
    EncodeCase("add_sp_imm", "ADD SP,#16", 0xB004),
    EncodeCase("sub_sp_imm", "SUB SP,#8", 0xB082),
    EncodeCase("sxtb", "SXTB R0,R0", 0xB240),
    EncodeCase("rev", "REV R0,R1", 0xBA08),
    EncodeCase("push_lr", "PUSH {R4,LR}", 0xB510),
    EncodeCase("push_low", "push {r0, r1}", 0xB403),
    EncodeCase("pop_pc", "POP {R4,PC}", 0xBD10),
    EncodeCase("stm_writeback", "STM R1!,{R1,R2,R3}", 0xC10E),
    EncodeCase("ldm_writeback", "LDM R1!, {R0}", 0xC901),
    EncodeCase("bne_back", "BNE -4", 0xD1FC),
    EncodeCase("beq_forward", "BEQ 4", 0xD000),
    EncodeCase("branch_self", "B 0", 0xE7FE),
    EncodeCase("swi", "SWI 12", 0xDF0C),
    EncodeCase("svc_alias", "SVC #12", 0xDF0C),
    EncodeCase("bkpt", "BKPT #1", 0xBE01),
    EncodeCase("nop", "NOP", 0xBF00),
    EncodeCase("wfi", "WFI", 0xBF30),
    EncodeCase("wfe", "wfe", 0xBF20),
    EncodeCase("bl_forward", "BL 4", 0xF000F801),
    EncodeCase("bl_backward", "BL -2", 0xF7FFFFFE),
    EncodeCase("dcw", "DCW 2001", 0x2001),
    EncodeCase("dcw_prefixed", "DCW 0xBEEF", 0xBEEF),
    EncodeCase("label_and_comment", "LOOP: MOV R0,#1 ; set flag", 0x2001),
]


@pytest.mark.parametrize("case", encode_cases, ids=[c.test_id for c in encode_cases])
def test_encode(case: EncodeCase) -> None:
    result = encode(case.line)
    assert result is not None
    assert result.raw == case.raw


def test_operands_are_reversed() -> None:
    assert encode("MOV R0, #1") == Encoded(0x2001, "MOV", [1, 0])
    assert encode("LDR R2,[R1,#8]") == Encoded(0x688A, "LDR", [8, 1, 2])


@pytest.mark.parametrize("line", ["", "   ", "; just a comment", "START:", "L: ; c"])
def test_no_instruction(line: str) -> None:
    assert encode(line) is None


@pytest.mark.parametrize(
    "line,expected",
    [
        ("BNE LOOP", Encoded(None, "BNE", ["LOOP"])),
        ("bne Loop", Encoded(None, "BNE", ["Loop"])),
        ("MOV R0, foo", Encoded(None, "MOV", [0, "foo"])),
        ("DCW XYZ", Encoded(None, "DCW", ["XYZ"])),
        ("DCW", Encoded(None, "DCW", [""])),
    ],
)
def test_unparseable_operand_sentinel(line: str, expected: Encoded) -> None:
    assert encode(line) == expected


@pytest.mark.parametrize(
    "line",
    [
        "FOO R0,R1",
        "SUB R0,R1",
        "LSL R0,R1,R2",
        "MOV R0,#256",
        "MOV R8,#1",
        "ADD R0,R1,#8",
        "ADD R0,R1,SP",
        "LDR R0,[R1,#3]",
        "LDR R0,[R1,#128]",
        "SUB SP,#2",
        "PUSH {R0,PC}",
        "POP {LR}",
        "STM R0!,{LR}",
        "BNE 1000",
        "BNE 3",
        "B 4096",
        "BKPT #256",
        "DCW 12345",
    ],
)
def test_encode_errors(line: str) -> None:
    with pytest.raises(EncodeError):
        encode(line)


def test_unknown_instruction_message_names_signature() -> None:
    with pytest.raises(EncodeError, match="FOO") as excinfo:
        encode("FOO R0,R1")
    assert "'RR'" in str(excinfo.value)


def test_strip_line() -> None:
    assert strip_line("LOOP: ldr r0,[r1,#4] ; load") == "ldr r0,r1,#4"
    assert strip_line("; only") == ""


def test_split_operands() -> None:
    assert split_operands("R0,R1") == ["R0", "R1"]
    assert split_operands("R1!,{R1,R2}") == ["R1", "{R1,R2}"]
    assert split_operands("{R4,LR}") == ["{R4,LR}"]
    assert split_operands("") == []
