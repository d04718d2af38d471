__version__ = "0.1.0"

from .asm import Assembler, AssemblerError, assemble
from .config import ThumbConfig, load_config, load_name_table
from .constants import BASE_ADDRESS
from .decoding import TABLE, DecodedLine, decode, extract
from .decoding.forms import EncodeError
from .disasm import Disassembler, disassemble
from .encoder import Encoded, encode

__all__ = [
    "BASE_ADDRESS",
    "TABLE",
    "Assembler",
    "AssemblerError",
    "DecodedLine",
    "Disassembler",
    "EncodeError",
    "Encoded",
    "ThumbConfig",
    "__version__",
    "assemble",
    "decode",
    "disassemble",
    "encode",
    "extract",
    "load_config",
    "load_name_table",
]
