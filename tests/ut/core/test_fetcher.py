"""BowerFetcher 端到端测试（网络下载经 monkeypatch 替换）"""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path

import pytest

import pkgmgmt.core.fetch.fetcher as fetcher_mod
import pkgmgmt.core.fetch.strategies as strategies_mod
from pkgmgmt.core.config import Config
from pkgmgmt.core.exceptions import (
    ManifestReadError,
    MalformedManifestError,
    NetworkFetchError,
    UnresolvedDependencyError,
)
from pkgmgmt.core.fetch.fetcher import BowerFetcher
from pkgmgmt.core.fetch.strategies import CloneContentFetcher, ZipContentFetcher
from pkgmgmt.core.models import FetchMode, ResolvedReason


def _zip(top: str, files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        zf.writestr(f"{top}/", b"")
        for name, text in files.items():
            zf.writestr(f"{top}/{name}", text)
    return buf.getvalue()


class FakeGitHub:
    """raw 清单 + zip 归档"""

    def __init__(self) -> None:
        self.raw: dict[str, str] = {}
        self.zips: dict[str, bytes] = {}
        self.zip_requests: list[str] = []

    def download_text(self, url: str, **_: object) -> str:
        if url not in self.raw:
            raise NetworkFetchError(f"下载失败 (HTTP 404): {url}")
        return self.raw[url]

    def download_bytes(self, url: str, **_: object) -> bytes:
        self.zip_requests.append(url)
        if url not in self.zips:
            raise NetworkFetchError(f"下载失败 (HTTP 404): {url}")
        return self.zips[url]


@pytest.fixture()
def github(monkeypatch: pytest.MonkeyPatch) -> FakeGitHub:
    gh = FakeGitHub()
    monkeypatch.setattr(fetcher_mod, "download_text", gh.download_text)
    monkeypatch.setattr(strategies_mod, "download_bytes", gh.download_bytes)
    return gh


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    (tmp_path / "bower.json").write_text(
        json.dumps({"name": "app", "dependencies": {"left-pad": "foo/left-pad#master"}}),
        encoding="utf-8",
    )
    (tmp_path / "bower_components").mkdir()
    return tmp_path


def _left_pad(gh: FakeGitHub, version: str = "1") -> None:
    gh.raw["https://raw.githubusercontent.com/foo/left-pad/master/bower.json"] = json.dumps(
        {"name": "left-pad"}
    )
    gh.zips["https://github.com/foo/left-pad/archive/master.zip"] = _zip(
        "left-pad-master", {"bower.json": '{"name": "left-pad"}', "index.js": f"v{version}"},
    )


def _fetcher(project: Path, **cfg: object) -> BowerFetcher:
    return BowerFetcher(project / "bower_components", "bower.json", config=Config(**cfg))


class TestEndToEnd:
    def test_install_fresh(self, project: Path, github: FakeGitHub) -> None:
        _left_pad(github)
        f = _fetcher(project)
        report = f.fetch_dependencies(project / "bower.json", FetchMode.INSTALL)

        assert report.success
        assert report.fetched == ["left-pad"]
        pkg = f.all_deps["left-pad"]
        assert pkg.resolution.reason is ResolvedReason.USED_AS_IS
        assert (pkg.path, pkg.branch) == ("foo/left-pad", "master")
        assert (project / "bower_components" / "left-pad" / "index.js").read_text() == "v1"

    def test_install_existing_is_skipped(self, project: Path, github: FakeGitHub) -> None:
        _left_pad(github)
        (project / "bower_components" / "left-pad").mkdir()
        report = _fetcher(project).fetch_dependencies(project / "bower.json", FetchMode.INSTALL)
        assert report.skipped == ["left-pad"]
        assert github.zip_requests == []

    def test_upgrade_refetches(self, project: Path, github: FakeGitHub) -> None:
        _left_pad(github, "1")
        f = _fetcher(project)
        f.fetch_dependencies(project / "bower.json", FetchMode.INSTALL)
        stale = project / "bower_components" / "left-pad" / "stale.txt"
        stale.write_text("x")

        _left_pad(github, "2")
        report = f.fetch_dependencies(project / "bower.json", FetchMode.UPGRADE)
        assert report.fetched == ["left-pad"]
        assert not stale.exists()
        assert (project / "bower_components" / "left-pad" / "index.js").read_text() == "v2"

    def test_transitive_and_missing_child_manifest(self, project: Path, github: FakeGitHub) -> None:
        (project / "bower.json").write_text(json.dumps({
            "name": "app",
            "dependencies": {"a": "org/a", "b": "org/b#1.0"},
        }))
        github.raw["https://raw.githubusercontent.com/org/a/master/bower.json"] = json.dumps(
            {"name": "a", "dependencies": {"c": "org/c#dev"}}
        )
        # org/b 没有 bower.json，org/c 同样没有
        for path, branch in (("org/a", "master"), ("org/b", "1.0"), ("org/c", "dev")):
            github.zips[f"https://github.com/{path}/archive/{branch}.zip"] = _zip(
                f"{path.split('/')[1]}-{branch}", {"x.js": path},
            )
        f = _fetcher(project, max_workers=2)
        report = f.fetch_dependencies(project / "bower.json", FetchMode.INSTALL)
        assert sorted(report.fetched) == ["a", "b", "c"]
        assert (project / "bower_components" / "c" / "x.js").read_text() == "org/c"

    def test_failed_zip_reported(self, project: Path, github: FakeGitHub) -> None:
        github.raw["https://raw.githubusercontent.com/foo/left-pad/master/bower.json"] = "{}"
        report = _fetcher(project).fetch_dependencies(project / "bower.json", FetchMode.INSTALL)
        assert not report.success
        assert "left-pad" in report.failed

    def test_rerun_clears_previous_set(self, project: Path, github: FakeGitHub) -> None:
        _left_pad(github)
        f = _fetcher(project)
        f.fetch_dependencies(project / "bower.json", FetchMode.INSTALL)
        (project / "bower.json").write_text('{"name": "app"}')
        f.fetch_dependencies(project / "bower.json", FetchMode.INSTALL)
        assert f.all_deps == {}


class TestRootErrors:
    def test_missing_spec_file(self, tmp_path: Path) -> None:
        f = BowerFetcher(tmp_path, "bower.json", config=Config())
        with pytest.raises(ManifestReadError):
            f.fetch_dependencies(tmp_path / "bower.json", FetchMode.INSTALL)

    def test_malformed_root(self, project: Path) -> None:
        (project / "bower.json").write_text("{broken")
        with pytest.raises(MalformedManifestError):
            _fetcher(project).fetch_dependencies(project / "bower.json", FetchMode.INSTALL)

    def test_require_resolved(self, project: Path, github: FakeGitHub) -> None:
        (project / "bower.json").write_text('{"dependencies": {"polymer": "*"}}')
        with pytest.raises(UnresolvedDependencyError):
            _fetcher(project).fetch_dependencies(
                project / "bower.json", FetchMode.INSTALL, require_resolved=True,
            )


class TestCommentLog:
    def test_unresolved_logged_with_hint(
        self, project: Path, github: FakeGitHub, caplog: pytest.LogCaptureFixture,
    ) -> None:
        (project / "bower.json").write_text(
            '{"dependencies": {"polymer": "*", "wct": "x/wct", "core": "x/core#^1.0"}}'
        )
        caplog.set_level(logging.INFO, logger="pkgmgmt")
        f = _fetcher(project, bower_ignored_deps=["wct"])
        report = f.fetch_dependencies(project / "bower.json", FetchMode.INSTALL)

        assert report.discovered == []
        text = caplog.text
        assert '"polymer": "*", <== ' in text
        assert "bower_overridden_deps" in text
        assert '"wct": "x/wct", <== ' in text
        assert '"core": "x/core#^1.0", <== ' in text


class TestStrategySelection:
    def test_zip_default(self, project: Path) -> None:
        assert isinstance(_fetcher(project).content_fetcher, ZipContentFetcher)

    def test_clone(self, project: Path) -> None:
        f = _fetcher(project, bower_fetch_strategy="clone")
        assert isinstance(f.content_fetcher, CloneContentFetcher)
        assert f.content_fetcher.scm.id == "git"

    def test_cancel_without_support(self, project: Path) -> None:
        _fetcher(project).cancel()
