"""内存诊断标记存储

MarkerSink 协议的默认实现，供 CLI / Web / 测试使用。
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from pkgmgmt.core.models import Marker, Severity

logger = logging.getLogger(__name__)


class MarkerStore:
    """按文件分组保存诊断标记"""

    def __init__(self) -> None:
        self._markers: dict[Path, list[Marker]] = {}
        self._lock = threading.Lock()

    def clear_markers(self, file: Path, service: str) -> None:
        with self._lock:
            kept = [m for m in self._markers.get(file, []) if m.service != service]
            if kept:
                self._markers[file] = kept
            else:
                self._markers.pop(file, None)

    def create_marker(
        self, file: Path, service: str, severity: Severity, message: str, line: int = 1,
    ) -> None:
        marker = Marker(file=file, service=service, severity=severity, message=message, line=line)
        with self._lock:
            self._markers.setdefault(file, []).append(marker)
        log = logger.error if severity is Severity.ERROR else logger.info
        log("[%s] %s:%d %s", service, file, line, message)

    def markers_for(self, file: Path, service: str | None = None) -> list[Marker]:
        with self._lock:
            return [
                m for m in self._markers.get(file, [])
                if service is None or m.service == service
            ]

    def all_markers(self) -> list[Marker]:
        with self._lock:
            return [m for ms in self._markers.values() for m in ms]
