"""进度上报与诊断标记存储测试"""

from __future__ import annotations

import threading
from pathlib import Path

from pkgmgmt.core.markers import MarkerStore
from pkgmgmt.core.models import Severity
from pkgmgmt.core.progress import LoggingProgressMonitor, NullProgressMonitor, ProgressFormat


class TestLoggingProgressMonitor:
    def test_n_out_of_m(self) -> None:
        m = LoggingProgressMonitor()
        m.start("拉取", 4, ProgressFormat.N_OUT_OF_M)
        m.worked(1)
        m.worked(2)
        assert m.describe() == "3/4"

    def test_percentage(self) -> None:
        m = LoggingProgressMonitor()
        m.start("拉取", 4, ProgressFormat.PERCENTAGE)
        m.worked(1)
        assert m.describe() == "25%"

    def test_unknown_total(self) -> None:
        m = LoggingProgressMonitor()
        m.start("pub", 0, ProgressFormat.NONE)
        m.worked(1)
        assert m.done == 1
        assert m.describe() == ""

    def test_start_resets(self) -> None:
        m = LoggingProgressMonitor()
        m.start("a", 2, ProgressFormat.N_OUT_OF_M)
        m.worked(2)
        m.start("b", 5, ProgressFormat.N_OUT_OF_M)
        assert m.done == 0
        assert m.label == "b"

    def test_concurrent_worked(self) -> None:
        m = LoggingProgressMonitor()
        m.start("x", 400, ProgressFormat.N_OUT_OF_M)
        threads = [threading.Thread(target=lambda: [m.worked(1) for _ in range(100)]) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert m.done == 400

    def test_null_monitor(self) -> None:
        m = NullProgressMonitor()
        m.start("x", 1)
        m.worked(1)


class TestMarkerStore:
    def test_create_and_clear_by_service(self) -> None:
        store = MarkerStore()
        f = Path("/p/pubspec.yaml")
        store.create_marker(f, "pub", Severity.WARNING, "missing a")
        store.create_marker(f, "other", Severity.INFO, "note")
        assert [m.message for m in store.markers_for(f, "pub")] == ["missing a"]
        assert len(store.markers_for(f)) == 2

        store.clear_markers(f, "pub")
        assert store.markers_for(f, "pub") == []
        assert len(store.all_markers()) == 1

    def test_clear_unknown_file(self) -> None:
        MarkerStore().clear_markers(Path("/nope"), "pub")
