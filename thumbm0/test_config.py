import json
from pathlib import Path

import pytest

from .config import ThumbConfig, load_config, load_name_table


def test_defaults() -> None:
    config = ThumbConfig()
    assert config.base_address == 0x08000000
    assert not config.show_addresses
    assert config.fix_branches
    assert config.resolve_labels
    assert not config.strict
    assert dict(config.name_table) == {}


def test_save_and_load(tmp_path: Path) -> None:
    path = tmp_path / "thumbm0.json"
    config = ThumbConfig(
        base_address=0x20000000, show_addresses=True, name_table={0x20000010: "main"}
    )
    config.save(str(path))
    data = json.loads(path.read_text())
    assert data["base_address"] == "0x20000000"
    assert data["names"] == {"0x20000010": "main"}

    loaded = ThumbConfig.load(str(path))
    assert loaded.base_address == 0x20000000
    assert loaded.show_addresses
    assert dict(loaded.name_table) == {0x20000010: "main"}


def test_name_table_is_read_only(tmp_path: Path) -> None:
    path = tmp_path / "names.json"
    path.write_text(json.dumps({"0x08000100": "reset", "134218240": "other"}))
    names = load_name_table(str(path))
    assert names[0x08000100] == "reset"
    assert names[0x08000200] == "other"
    with pytest.raises(TypeError):
        names[0] = "nope"  # type: ignore[index]


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("THUMBM0_BASE_ADDRESS", "0x1000")
    monkeypatch.setenv("THUMBM0_SHOW_ADDRESSES", "1")
    monkeypatch.setenv("THUMBM0_FIX_BRANCHES", "off")
    monkeypatch.delenv("THUMBM0_RESOLVE_LABELS", raising=False)
    monkeypatch.setenv("THUMBM0_STRICT", "false")
    config = load_config()
    assert config.base_address == 0x1000
    assert config.show_addresses
    assert not config.fix_branches
    assert config.resolve_labels
    assert not config.strict
