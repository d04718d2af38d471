from .bits import extract, pack, unpack
from .decoder import decode
from .forms import DecodedLine, Displacement, DisplacementKind, Form, Leaf
from .table import TABLE, InstructionTable, TableError, build_table

__all__ = [
    "TABLE",
    "DecodedLine",
    "Displacement",
    "DisplacementKind",
    "Form",
    "InstructionTable",
    "Leaf",
    "TableError",
    "build_table",
    "decode",
    "extract",
    "pack",
    "unpack",
]
