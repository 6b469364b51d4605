"""进度上报实现

ProgressMonitor 协议的两个默认实现:
  - LoggingProgressMonitor: 写日志，支持 "N/M"、百分比和无进度三种展示
  - NullProgressMonitor:    什么都不做
"""

from __future__ import annotations

import logging
import threading
from enum import Enum

logger = logging.getLogger(__name__)


class ProgressFormat(str, Enum):
    NONE = "none"
    N_OUT_OF_M = "n_out_of_m"
    PERCENTAGE = "percentage"


class NullProgressMonitor:
    def start(self, label: str, max_work: int = 0, fmt: ProgressFormat | None = None) -> None:
        pass

    def worked(self, n: int = 1) -> None:
        pass


class LoggingProgressMonitor:
    """把进度写入日志；worked 可能从多个线程调用"""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self._lock = threading.Lock()
        self.label = ""
        self.max_work = 0
        self.fmt = ProgressFormat.NONE
        self.done = 0

    def start(self, label: str, max_work: int = 0, fmt: ProgressFormat | None = None) -> None:
        with self._lock:
            self.label = label
            self.max_work = max(0, max_work)
            self.fmt = fmt or ProgressFormat.NONE
            self.done = 0
        self._log.info("%s", label)

    def worked(self, n: int = 1) -> None:
        with self._lock:
            self.done += n
            text = self.describe()
        if text:
            self._log.info("%s %s", self.label, text)

    def describe(self) -> str:
        if self.max_work <= 0 or self.fmt is ProgressFormat.NONE:
            return ""
        if self.fmt is ProgressFormat.PERCENTAGE:
            return f"{min(100, self.done * 100 // self.max_work)}%"
        return f"{self.done}/{self.max_work}"
