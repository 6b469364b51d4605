"""依赖引用解析策略测试"""

from __future__ import annotations

import pytest

from pkgmgmt.core.config import Config
from pkgmgmt.core.models import (
    DEFAULT_BRANCH,
    DependencyDeclaration,
    IgnoredReason,
    ResolutionKind,
    ResolvedReason,
    UnresolvedReason,
)
from pkgmgmt.core.policy import (
    ResolutionConfig,
    is_simple_branch,
    resolve_declaration,
    resolve_dependency,
)


class TestUsedAsIs:
    def test_path_and_branch(self) -> None:
        pkg = resolve_dependency("left-pad", "foo/left-pad#master")
        assert pkg.resolution.reason is ResolvedReason.USED_AS_IS
        assert pkg.path == "foo/left-pad"
        assert pkg.branch == "master"
        assert pkg.resolution_comment == ""

    def test_missing_branch_defaults(self) -> None:
        pkg = resolve_dependency("polymer", "Polymer/polymer")
        assert pkg.is_resolved
        assert pkg.branch == DEFAULT_BRANCH
        assert pkg.resolution.reason is ResolvedReason.USED_AS_IS

    def test_simple_version(self) -> None:
        pkg = resolve_dependency("core", "Polymer/core-ajax#0.5.5")
        assert pkg.branch == "0.5.5"
        assert pkg.resolution.reason is ResolvedReason.USED_AS_IS


class TestIgnored:
    def test_ignore_wins_over_everything(self) -> None:
        cfg = ResolutionConfig(
            ignored=frozenset({"wct"}), overridden={"wct": "a/b#c"},
        )
        pkg = resolve_dependency("wct", "*", cfg)
        assert pkg.resolution.kind is ResolutionKind.IGNORED
        assert pkg.resolution.reason is IgnoredReason.PER_CONFIG_DIRECTIVE
        assert not pkg.is_resolved

    def test_comment_line(self) -> None:
        cfg = ResolutionConfig(ignored=frozenset({"wct"}))
        pkg = resolve_dependency("wct", "x/wct#1.0", cfg)
        assert pkg.resolution_comment.startswith('"wct": "x/wct#1.0", <== ')


class TestStarPath:
    def test_unmapped(self) -> None:
        pkg = resolve_dependency("polymer", "*")
        assert pkg.resolution.reason is UnresolvedReason.STAR_PATH_UNMAPPED
        assert pkg.resolution.is_unresolved

    def test_mapped(self) -> None:
        cfg = ResolutionConfig(overridden={"polymer": "Polymer/polymer#0.5.5"})
        pkg = resolve_dependency("polymer", "*", cfg)
        assert pkg.resolution.reason is ResolvedReason.STAR_PATH_MAPPED
        assert pkg.path == "Polymer/polymer"
        assert pkg.branch == "0.5.5"
        assert pkg.declared_expr == "*"
        assert pkg.location_expr == "Polymer/polymer#0.5.5"

    def test_mapped_without_branch_keeps_star_reason(self) -> None:
        cfg = ResolutionConfig(overridden={"polymer": "Polymer/polymer"})
        pkg = resolve_dependency("polymer", "*", cfg)
        assert pkg.resolution.reason is ResolvedReason.STAR_PATH_MAPPED
        assert pkg.branch == DEFAULT_BRANCH


class TestOverride:
    def test_overridden(self) -> None:
        cfg = ResolutionConfig(overridden={"a": "other/a#dev"})
        pkg = resolve_dependency("a", "orig/a#1.0", cfg)
        assert pkg.resolution.reason is ResolvedReason.PATH_OVERRIDDEN
        assert pkg.path == "other/a"
        assert pkg.branch == "dev"

    def test_malformed_override_still_caught(self) -> None:
        cfg = ResolutionConfig(overridden={"a": "not a valid spec!"})
        pkg = resolve_dependency("a", "orig/a#1.0", cfg)
        assert pkg.resolution.reason is UnresolvedReason.MALFORMED_SPEC

    def test_override_with_complex_version_defaulted(self) -> None:
        cfg = ResolutionConfig(overridden={"a": "other/a#^1.0"}, map_complex_to_stable=True)
        pkg = resolve_dependency("a", "orig/a#1.0", cfg)
        # 复杂版本映射覆盖了 PATH_OVERRIDDEN 标记
        assert pkg.resolution.reason is ResolvedReason.COMPLEX_VERSION_DEFAULTED
        assert pkg.branch == DEFAULT_BRANCH


class TestMalformed:
    @pytest.mark.parametrize("expr", ["", "a b", "foo/bar#", "foo#bar#baz", "http://x/y"])
    def test_malformed(self, expr: str) -> None:
        pkg = resolve_dependency("x", expr)
        assert pkg.resolution.reason is UnresolvedReason.MALFORMED_SPEC


class TestComplexVersion:
    @pytest.mark.parametrize("expr", [
        "Polymer/polymer#^0.5.0",
        "Polymer/polymer#~1.2.3",
        "Polymer/polymer#1.2.*",
        "Polymer/polymer#'>=1.2.3 <2.0.0'",
    ])
    def test_unsupported_by_default(self, expr: str) -> None:
        pkg = resolve_dependency("polymer", expr)
        assert pkg.resolution.reason is UnresolvedReason.COMPLEX_VERSION_UNSUPPORTED

    def test_mapped_to_stable(self) -> None:
        cfg = ResolutionConfig(map_complex_to_stable=True)
        pkg = resolve_dependency("polymer", "Polymer/polymer#^0.5.0", cfg)
        assert pkg.resolution.reason is ResolvedReason.COMPLEX_VERSION_DEFAULTED
        assert pkg.branch == DEFAULT_BRANCH
        assert pkg.path == "Polymer/polymer"


class TestHelpers:
    @pytest.mark.parametrize("branch,expected", [
        ("master", True),
        ("1.2.3-pre.4", True),
        ("^1.2", False),
        ("1.2.*", False),
        ("'>=1'", False),
    ])
    def test_is_simple_branch(self, branch: str, expected: bool) -> None:
        assert is_simple_branch(branch) is expected

    def test_from_config(self) -> None:
        cfg = Config(
            bower_ignored_deps=["a"],
            bower_overridden_deps={"b": "x/b"},
            bower_map_complex_ver_to_latest_stable=True,
        )
        rc = ResolutionConfig.from_config(cfg)
        assert rc.ignored == frozenset({"a"})
        assert rc.overridden == {"b": "x/b"}
        assert rc.map_complex_to_stable is True

    def test_resolve_declaration(self) -> None:
        pkg = resolve_declaration(DependencyDeclaration("a", "x/a#b"))
        assert (pkg.name, pkg.path, pkg.branch) == ("a", "x/a", "b")

    def test_urls(self) -> None:
        pkg = resolve_dependency("left-pad", "foo/left-pad#master")
        assert pkg.zip_url() == "https://github.com/foo/left-pad/archive/master.zip"
        assert pkg.clone_url() == "https://github.com/foo/left-pad"
        assert pkg.single_file_url("bower.json") == (
            "https://raw.githubusercontent.com/foo/left-pad/master/bower.json"
        )
