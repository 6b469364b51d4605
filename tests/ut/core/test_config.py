"""Config 加载测试"""

from __future__ import annotations

from pathlib import Path

import pytest

import pkgmgmt.core.config as cfgmod
from pkgmgmt.core.config import Config
from pkgmgmt.core.exceptions import ConfigError


class TestConfigDefaults:
    def test_defaults(self) -> None:
        cfg = Config()
        assert cfg.bower_ignored_deps == []
        assert cfg.bower_overridden_deps == {}
        assert cfg.bower_map_complex_ver_to_latest_stable is False
        assert cfg.bower_fetch_strategy == "zip"
        assert cfg.max_workers == 8

    def test_invalid_strategy(self) -> None:
        with pytest.raises(ConfigError, match="拉取策略"):
            Config(bower_fetch_strategy="svn")

    def test_invalid_workers(self) -> None:
        with pytest.raises(ConfigError, match="max_workers"):
            Config(max_workers=0)


class TestFromFile:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        cfg = Config.from_file(str(tmp_path / "nope.yml"))
        assert cfg == Config()

    def test_load(self, tmp_path: Path) -> None:
        p = tmp_path / "cfg.yml"
        p.write_text(
            "bower_ignored_deps: [wct]\n"
            "bower_overridden_deps:\n"
            "  polymer: Polymer/polymer#0.5.5\n"
            "bower_map_complex_ver_to_latest_stable: true\n"
            "bower_fetch_strategy: clone\n"
            "max_workers: 2\n"
            "team: infra\n",
            encoding="utf-8",
        )
        cfg = Config.from_file(str(p))
        assert cfg.bower_ignored_deps == ["wct"]
        assert cfg.bower_overridden_deps == {"polymer": "Polymer/polymer#0.5.5"}
        assert cfg.bower_map_complex_ver_to_latest_stable is True
        assert cfg.bower_fetch_strategy == "clone"
        assert cfg.max_workers == 2
        assert cfg.extra == {"team": "infra"}

    def test_empty_values_ignored(self, tmp_path: Path) -> None:
        p = tmp_path / "cfg.yml"
        p.write_text("bower_ignored_deps:\nmax_workers: 3\n", encoding="utf-8")
        cfg = Config.from_file(str(p))
        assert cfg.bower_ignored_deps == []
        assert cfg.max_workers == 3

    def test_broken_yaml(self, tmp_path: Path) -> None:
        p = tmp_path / "cfg.yml"
        p.write_text("bower_ignored_deps: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="无法加载"):
            Config.from_file(str(p))

    def test_bundled_default_config(self) -> None:
        root = Path(__file__).resolve().parents[3]
        cfg = Config.from_file(str(root / "configs" / "default.yml"))
        assert cfg.bower_fetch_strategy == "zip"
        assert cfg.extra == {}


class TestGlobalConfig:
    def test_init_and_get(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cfgmod, "_current", None)
        p = tmp_path / "cfg.yml"
        p.write_text("max_workers: 5\n", encoding="utf-8")
        cfgmod.init_config(str(p))
        assert cfgmod.get_config().max_workers == 5

    def test_get_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(cfgmod, "_current", None)
        assert cfgmod.get_config() == Config()
