"""Assembler and disassembler options."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from .constants import BASE_ADDRESS


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().casefold()
    return normalized not in {"0", "false", "off", ""}


def _address(value: Union[int, str]) -> int:
    return int(value, 0) if isinstance(value, str) else value


def _names(data: Mapping[Any, str]) -> Mapping[int, str]:
    return MappingProxyType({_address(k): str(v) for k, v in data.items()})


@dataclass(frozen=True)
class ThumbConfig:
    base_address: int = BASE_ADDRESS
    show_addresses: bool = False
    fix_branches: bool = True
    resolve_labels: bool = True
    strict: bool = False
    name_table: Mapping[int, str] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_address": f"0x{self.base_address:08X}",
            "show_addresses": self.show_addresses,
            "fix_branches": self.fix_branches,
            "resolve_labels": self.resolve_labels,
            "strict": self.strict,
            "names": {f"0x{a:08X}": n for a, n in sorted(self.name_table.items())},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ThumbConfig":
        defaults = cls()
        return cls(
            base_address=_address(data.get("base_address", defaults.base_address)),
            show_addresses=bool(data.get("show_addresses", defaults.show_addresses)),
            fix_branches=bool(data.get("fix_branches", defaults.fix_branches)),
            resolve_labels=bool(data.get("resolve_labels", defaults.resolve_labels)),
            strict=bool(data.get("strict", defaults.strict)),
            name_table=_names(data.get("names", {})),
        )

    def save(self, path: str) -> None:
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> "ThumbConfig":
        with open(path, "r") as f:
            return cls.from_dict(json.load(f))


def load_name_table(path: str) -> Mapping[int, str]:
    """Read a JSON object mapping addresses (ints or ``"0x..."``) to names."""
    with open(path, "r") as f:
        return _names(json.load(f))


def load_config(path: Optional[str] = None) -> ThumbConfig:
    config = ThumbConfig.load(path) if path else ThumbConfig()
    base = os.getenv("THUMBM0_BASE_ADDRESS")
    return replace(
        config,
        base_address=int(base, 0) if base else config.base_address,
        show_addresses=_env_flag("THUMBM0_SHOW_ADDRESSES", config.show_addresses),
        fix_branches=_env_flag("THUMBM0_FIX_BRANCHES", config.fix_branches),
        resolve_labels=_env_flag("THUMBM0_RESOLVE_LABELS", config.resolve_labels),
        strict=_env_flag("THUMBM0_STRICT", config.strict),
    )


__all__ = ["ThumbConfig", "load_config", "load_name_table"]
