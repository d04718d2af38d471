# Default load address of on-chip flash on the usual Cortex-M0 parts
BASE_ADDRESS = 0x08000000

HALFWORD_MASK = 0xFFFF

SP = 13
LR = 14
PC = 15

REGISTER_NAMES = [f"R{i}" for i in range(13)] + ["SP", "LR", "PC"]

# Register list mask bits beyond r0-r7
LIST_LR = 0x100
LIST_PC = 0x200

CONDITIONS = [
    "EQ",
    "NE",
    "CS",
    "CC",
    "MI",
    "PL",
    "VS",
    "VC",
    "HI",
    "LS",
    "GE",
    "LT",
    "GT",
    "LE",
]

ALU_OPS = [
    "AND",
    "EOR",
    "LSL",
    "LSR",
    "ASR",
    "ADC",
    "SBC",
    "ROR",
    "TST",
    "NEG",
    "CMP",
    "CMN",
    "ORR",
    "MUL",
    "BIC",
    "MVN",
]

HINTS = {
    "NOP": 0x00,
    "YIELD": 0x10,
    "WFE": 0x20,
    "WFI": 0x30,
    "SEV": 0x40,
}

# Mnemonics whose register operands may name SP/LR/PC or r8-r15 in a slot
# whose signature letter is R
FULL_REGISTER_MNEMONICS = frozenset({"MOV", "CMP", "ADD", "SUB", "BX", "BLX"})

# Mnemonics starting with B that never take a label operand
NON_BRANCH_B_MNEMONICS = frozenset({"BIC", "BKPT", "BX", "BLX"})

DATA_MNEMONIC = "DCW"
LABEL_PREFIX = "Q"


def register_name(number: int) -> str:
    return REGISTER_NAMES[number]
