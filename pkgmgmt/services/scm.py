"""源码管理提供者

目前只有 git。克隆通过 subprocess.Popen 执行，以便 cancel_clone
能终止正在运行的进程。提供者集合由 ScmRegistry 显式持有，
调用方注入，不依赖全局注册表。
"""

from __future__ import annotations

import logging
import re
import subprocess
import threading
from pathlib import Path
from typing import Iterable

from pkgmgmt.core.exceptions import CloneCancelledError, ExecutionError, ValidationError
from pkgmgmt.core.protocols import ScmProvider

logger = logging.getLogger(__name__)

_SAFE_REF_RE = re.compile(r"^[a-zA-Z0-9_./@\-]+$")


class GitScmProvider:
    """git 克隆（可取消）"""

    id = "git"

    def __init__(self, git_bin: str = "git") -> None:
        self.git_bin = git_bin
        self._lock = threading.Lock()
        # 运行中的进程 -> 是否已被取消
        self._running: dict[subprocess.Popen, bool] = {}

    def clone(self, url: str, directory: Path, *, branch: str = "") -> None:
        """克隆到 directory（目录可以已存在但必须为空）

        先尝试浅克隆指定分支，失败则回退为完整克隆 + checkout。
        """
        if branch and not _SAFE_REF_RE.match(branch):
            raise ValidationError(f"分支名包含非法字符: {branch}")

        target = str(directory)
        args = [self.git_bin, "clone", "--depth", "1"]
        if branch:
            args += ["--branch", branch]
        rc, err = self._run(args + [url, target])
        if rc == 0:
            logger.info("Git 就绪: %s@%s -> %s", url, branch or "HEAD", target)
            return
        if not branch:
            raise ExecutionError(f"git clone 失败 (rc={rc}): {err[:300]}")

        logger.debug("浅克隆失败，回退为完整克隆: %s@%s", url, branch)
        rc, err = self._run([self.git_bin, "clone", url, target])
        if rc != 0:
            raise ExecutionError(f"git clone 失败 (rc={rc}): {err[:300]}")
        rc, err = self._run([self.git_bin, "checkout", branch], cwd=target)
        if rc != 0:
            raise ExecutionError(f"git checkout 失败 (rc={rc}): {err[:300]}")
        logger.info("Git 就绪: %s@%s -> %s", url, branch, target)

    def cancel_clone(self) -> None:
        """终止所有运行中的 git 进程，对应的 clone 调用抛 CloneCancelledError"""
        with self._lock:
            procs = list(self._running)
            for p in procs:
                self._running[p] = True
        for p in procs:
            logger.info("取消 git 进程 pid=%s", p.pid)
            p.terminate()

    def _run(self, args: list[str], cwd: str | None = None) -> tuple[int, str]:
        logger.info("  执行: %s", " ".join(args))
        try:
            proc = subprocess.Popen(
                args, cwd=cwd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True,
            )
        except FileNotFoundError as e:
            return 127, str(e)

        with self._lock:
            self._running[proc] = False
        try:
            _, stderr = proc.communicate()
        finally:
            with self._lock:
                cancelled = self._running.pop(proc, False)
        if cancelled:
            raise CloneCancelledError(f"git 操作已取消: {' '.join(args)}")
        return proc.returncode, stderr or ""


class ScmRegistry:
    """源码管理提供者集合，按 id 查找"""

    def __init__(self, providers: Iterable[ScmProvider] = ()) -> None:
        self._providers: dict[str, ScmProvider] = {}
        for p in providers:
            self.register(p)

    @classmethod
    def default(cls) -> ScmRegistry:
        return cls([GitScmProvider()])

    def register(self, provider: ScmProvider) -> None:
        self._providers[provider.id] = provider

    def get(self, provider_id: str) -> ScmProvider:
        try:
            return self._providers[provider_id]
        except KeyError:
            raise ValidationError(
                f"未知的源码管理提供者: {provider_id} (可用: {', '.join(self.ids()) or '无'})"
            ) from None

    def ids(self) -> list[str]:
        return sorted(self._providers)

    def cancel_all(self) -> None:
        for p in self._providers.values():
            p.cancel_clone()
