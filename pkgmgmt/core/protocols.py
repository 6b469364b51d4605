"""领域协议定义

集中定义包管理各层之间的接口契约（Protocol），
上层依赖抽象而非具体实现: 两种包管理器（bower / pub）实现同一组协议，
进度上报、诊断标记、源码管理等外部协作方同样只通过协议接入。

使用 typing.Protocol 而非 ABC，使得实现类无需继承即可满足协议。
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, Union

if TYPE_CHECKING:
    from pkgmgmt.core.models import ChangeDelta, Severity
    from pkgmgmt.core.progress import ProgressFormat
    from pkgmgmt.services.properties import PackageServiceProperties


# =========================================================================
# 进度上报协议
# =========================================================================

class ProgressMonitor(Protocol):
    """进度上报协议

    每次批量操作调用一次 start，每完成一个包（无论成败）调用一次 worked(1)。
    max_work 为 0 表示总量未知。
    """

    def start(self, label: str, max_work: int = 0, fmt: ProgressFormat | None = None) -> None:
        ...

    def worked(self, n: int = 1) -> None:
        ...


# =========================================================================
# 诊断标记协议
# =========================================================================

class MarkerSink(Protocol):
    """诊断标记接收方（构建 / 标记系统的窄接口）"""

    def clear_markers(self, file: Path, service: str) -> None:
        ...

    def create_marker(
        self, file: Path, service: str, severity: Severity, message: str, line: int = 1,
    ) -> None:
        ...


# =========================================================================
# 源码管理协议
# =========================================================================

class ScmProvider(Protocol):
    """源码管理提供者协议（目前只有 git）"""

    @property
    def id(self) -> str:
        ...

    def clone(self, url: str, directory: Path, *, branch: str = "") -> None:
        """把 url 克隆到 directory；失败抛 ExecutionError"""
        ...

    def cancel_clone(self) -> None:
        """中止正在进行的克隆"""
        ...


# =========================================================================
# 包管理器协议
# =========================================================================

# are_packages_installed 的返回值: True 或第一个缺失的依赖名
InstallCheck = Union[bool, str]


class PackageResolver(Protocol):
    """符号引用 <-> 包目录中的文件"""

    def resolve_ref_to_file(self, ref: str) -> Path | None:
        ...

    def get_reference_for(self, file: Path) -> str | None:
        ...


class PackageBuilder(Protocol):
    """监听清单 / 包目录变更，刷新项目的包元数据"""

    def build(self, changes: list[ChangeDelta]) -> None:
        ...


class PackageManager(Protocol):
    """包管理器门面: bower 与 pub 各自独立实现"""

    @property
    def properties(self) -> PackageServiceProperties:
        ...

    def get_builder(self) -> PackageBuilder:
        ...

    def get_resolver_for(self, project: Path) -> PackageResolver:
        ...

    def install_packages(self, root: Path, monitor: ProgressMonitor | None = None) -> object:
        ...

    def upgrade_packages(self, root: Path, monitor: ProgressMonitor | None = None) -> object:
        ...

    def are_packages_installed(self, root: Path) -> InstallCheck:
        ...
