import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Tuple

import bincopy  # type: ignore[import-untyped]
from plumbum import cli  # type: ignore[import-untyped]

from . import __version__
from .asm import Assembler, AssemblerError, as_binfile
from .config import ThumbConfig, load_config, load_name_table
from .decoding.forms import EncodeError
from .disasm import Disassembler

IMAGE_SUFFIXES = {".hex", ".ihex", ".srec", ".s19", ".s28", ".s37", ".mot"}


def _parse_address(text: str) -> int:
    return int(text, 0)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def read_image(path: str) -> Tuple[bytes, Optional[int]]:
    """Load a raw binary, or an Intel HEX / S-record image and its address."""
    if Path(path).suffix.lower() in IMAGE_SUFFIXES:
        binfile = bincopy.BinFile(path)
        return bytes(binfile.as_binary()), binfile.minimum_address
    return Path(path).read_bytes(), None


class _Common(cli.Application):
    VERSION = __version__

    config_file = cli.SwitchAttr(
        ["-c", "--config"], cli.ExistingFile, help="JSON configuration file"
    )
    base_address = cli.SwitchAttr(
        ["-b", "--base"], _parse_address, help="Load address (default 0x08000000)"
    )
    output_file = cli.SwitchAttr(
        ["-o", "--output"], str, help="Output file path (default: stdout)"
    )
    verbose = cli.Flag(["-v", "--verbose"], help="Log debug output")

    def load(self) -> ThumbConfig:
        _setup_logging(self.verbose)
        config = load_config(str(self.config_file) if self.config_file else None)
        if self.base_address is not None:
            config = replace(config, base_address=self.base_address)
        return config


class AssembleCLI(_Common):
    """Assemble Thumb source into a raw binary, Intel HEX or S-record file."""

    PROGNAME = "thumbm0-asm"

    output_format = cli.SwitchAttr(
        ["-f", "--format"], cli.Set("bin", "ihex", "srec"), default="bin"
    )
    no_labels = cli.Flag(["--no-labels"], help="Skip the label resolution pass")
    strict = cli.Flag(["--strict"], help="Fail on the first bad line")

    def main(self, input_file: cli.ExistingFile) -> int:
        config = self.load()
        try:
            with open(str(input_file), "r") as f:
                source_code = f.read()
            assembler = Assembler(strict=self.strict or config.strict)
            resolve = config.resolve_labels and not self.no_labels
            data = assembler.assemble(source_code, resolve)
        except (AssemblerError, EncodeError, OSError) as e:
            print(f"Assembly Error: {e}", file=sys.stderr)
            return 1

        fmt = self.output_format.lower()
        if fmt == "bin":
            if self.output_file:
                Path(self.output_file).write_bytes(data)
            else:
                print(data.hex(" ").upper())
            return 0

        binfile = as_binfile(data, config.base_address)
        text = binfile.as_ihex() if fmt == "ihex" else binfile.as_srec()
        if self.output_file:
            Path(self.output_file).write_text(text)
        else:
            print(text.strip())
        return 0


class DisassembleCLI(_Common):
    """Disassemble a raw binary, Intel HEX or S-record image."""

    PROGNAME = "thumbm0-disasm"

    addresses = cli.Flag(["-a", "--addresses"], help="Show address and raw columns")
    no_fix_branches = cli.Flag(
        ["--no-fix-branches"], help="Leave branch targets as raw addresses"
    )
    names_file = cli.SwitchAttr(
        ["-n", "--names"], cli.ExistingFile, help="JSON address to name table"
    )

    def main(self, input_file: cli.ExistingFile) -> int:
        config = self.load()
        try:
            data, image_address = read_image(str(input_file))
            names = (
                load_name_table(str(self.names_file))
                if self.names_file
                else config.name_table
            )
        except (OSError, ValueError, bincopy.Error) as e:
            print(f"Disassembly Error: {e}", file=sys.stderr)
            return 1

        base = config.base_address
        if self.base_address is None and image_address is not None:
            base = image_address
        listing = Disassembler(base, names).disassemble(
            data,
            show_addresses=self.addresses or config.show_addresses,
            fix_branches=config.fix_branches and not self.no_fix_branches,
        )
        if self.output_file:
            Path(self.output_file).write_text(listing + "\n")
        else:
            print(listing)
        return 0
