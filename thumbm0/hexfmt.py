"""Fixed-width upper-case hex formatting used in listings."""


def hex8(value: int) -> str:
    return f"{value & 0xFF:02X}"


def hex16(value: int) -> str:
    return f"{value & 0xFFFF:04X}"


def hex32(value: int) -> str:
    return f"{value & 0xFFFFFFFF:08X}"
