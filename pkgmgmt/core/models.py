"""核心数据模型

清单声明、解析结论、包实体、拉取报告、变更记录与诊断标记集中定义，
其他模块统一从此处导入。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

GITHUB_ROOT_URL = "https://github.com"
GITHUB_USER_CONTENT_URL = "https://raw.githubusercontent.com"

# 未指定分支 / 复杂版本被映射时使用的稳定分支
DEFAULT_BRANCH = "master"


# =========================================================================
# 清单
# =========================================================================


@dataclass(frozen=True)
class DependencyDeclaration:
    """清单中的单条依赖声明: name -> 位置表达式"""

    name: str
    location_expr: str


@dataclass
class ManifestInfo:
    """解析后的清单内容"""

    name: str | None = None
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)

    def declarations(self, include_dev: bool = False) -> list[DependencyDeclaration]:
        """按清单顺序生成依赖声明"""
        decls = [DependencyDeclaration(k, v) for k, v in self.dependencies.items()]
        if include_dev:
            decls.extend(
                DependencyDeclaration(k, v) for k, v in self.dev_dependencies.items()
                if k not in self.dependencies
            )
        return decls

    def dependency_names(self, include_dev: bool = False) -> list[str]:
        return [d.name for d in self.declarations(include_dev)]


# =========================================================================
# 解析结论（封闭的标签联合）
# =========================================================================


class ResolutionKind(str, Enum):
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"
    IGNORED = "ignored"


class ResolvedReason(str, Enum):
    """已解析的原因；值即给用户看的说明"""

    USED_AS_IS = ""
    STAR_PATH_MAPPED = '"*" 路径已按配置文件中的映射解析'
    PATH_OVERRIDDEN = "原始路径已被配置文件中的映射覆盖"
    COMPLEX_VERSION_DEFAULTED = '不支持的版本表达式，已默认使用最新的 "master"'


class UnresolvedReason(str, Enum):
    MALFORMED_SPEC = "无法识别的依赖声明，请改为受支持的格式"
    STAR_PATH_UNMAPPED = '请将 "*" 路径替换为明确的路径'
    COMPLEX_VERSION_UNSUPPORTED = "请将复杂版本表达式替换为简单版本"


class IgnoredReason(str, Enum):
    PER_CONFIG_DIRECTIVE = "已按配置文件中的指令忽略"


Reason = Union[ResolvedReason, UnresolvedReason, IgnoredReason]

_KIND_OF_REASON: dict[type, ResolutionKind] = {
    ResolvedReason: ResolutionKind.RESOLVED,
    UnresolvedReason: ResolutionKind.UNRESOLVED,
    IgnoredReason: ResolutionKind.IGNORED,
}


@dataclass(frozen=True)
class Resolution:
    """单条依赖的解析结论: kind + reason，reason 的类型决定 kind"""

    reason: Reason

    @property
    def kind(self) -> ResolutionKind:
        return _KIND_OF_REASON[type(self.reason)]

    @property
    def is_resolved(self) -> bool:
        return self.kind is ResolutionKind.RESOLVED

    @property
    def is_unresolved(self) -> bool:
        return self.kind is ResolutionKind.UNRESOLVED

    @property
    def is_ignored(self) -> bool:
        return self.kind is ResolutionKind.IGNORED

    @property
    def comment(self) -> str:
        return self.reason.value


# =========================================================================
# 包
# =========================================================================


@dataclass
class Package:
    """经策略评估后的依赖包

    同一次发现过程中以 name 作为身份；冲突检测按 (path, branch) 比较。
    """

    name: str
    declared_expr: str
    resolution: Resolution
    location_expr: str = ""   # 覆盖表替换后的实际表达式
    path: str = ""            # 如 "Polymer/polymer"
    branch: str = ""          # 如 "master" / "1.2.3"

    @property
    def is_resolved(self) -> bool:
        return self.resolution.is_resolved

    def same_source(self, other: Package) -> bool:
        return self.path == other.path and self.branch == other.branch

    @property
    def spec_line(self) -> str:
        return f'"{self.name}": "{self.declared_expr}"'

    @property
    def resolution_comment(self) -> str:
        """USED_AS_IS 时为空，否则为 `"name": "expr", <== 原因`"""
        if self.resolution.reason is ResolvedReason.USED_AS_IS:
            return ""
        return f"{self.spec_line}, <== {self.resolution.comment}"

    def clone_url(self, root: str = GITHUB_ROOT_URL) -> str:
        return f"{root.rstrip('/')}/{self.path}"

    def zip_url(self, root: str = GITHUB_ROOT_URL) -> str:
        return f"{root.rstrip('/')}/{self.path}/archive/{self.branch}.zip"

    def single_file_url(
        self, remote_file_path: str, root: str = GITHUB_USER_CONTENT_URL,
    ) -> str:
        return f"{root.rstrip('/')}/{self.path}/{self.branch}/{remote_file_path}"


# =========================================================================
# 拉取
# =========================================================================


class FetchMode(str, Enum):
    """INSTALL 不动已存在的包目录；UPGRADE 强制重新拉取"""

    INSTALL = "install"
    UPGRADE = "upgrade"


@dataclass
class PackageDirState:
    """包目录准备结果（瞬时值，不持久化）"""

    path: Path
    existed: bool


@dataclass
class ResolutionComments:
    """一次发现过程累积的解析说明，结束时统一输出一次"""

    altered: list[str] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)

    def record(self, package: Package) -> None:
        """按解析结论归档一条说明（去重，保留首次出现的顺序）"""
        comment = package.resolution_comment
        if package.resolution.is_unresolved:
            target = self.unresolved
        elif package.resolution.is_ignored:
            target = self.ignored
        elif comment:
            target = self.altered
        else:
            return
        if comment not in target:
            target.append(comment)

    def is_empty(self) -> bool:
        return not (self.altered or self.ignored or self.unresolved)

    def clear(self) -> None:
        self.altered.clear()
        self.ignored.clear()
        self.unresolved.clear()


@dataclass
class FetchReport:
    """一次 install / upgrade 的汇总"""

    mode: FetchMode
    discovered: list[str] = field(default_factory=list)
    fetched: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    comments: ResolutionComments = field(default_factory=ResolutionComments)

    @property
    def success(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "discovered": list(self.discovered),
            "fetched": list(self.fetched),
            "skipped": list(self.skipped),
            "failed": dict(self.failed),
            "comments": {
                "altered": list(self.comments.altered),
                "ignored": list(self.comments.ignored),
                "unresolved": list(self.comments.unresolved),
            },
        }


# =========================================================================
# 变更记录 / 诊断标记
# =========================================================================


class ChangeKind(str, Enum):
    ADD = "add"
    CHANGE = "change"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeDelta:
    """文件系统变更记录（由外部监听器产生）

    project 为变更所属的项目根目录；未给出时由构建器向上查找。
    """

    path: Path
    kind: ChangeKind = ChangeKind.CHANGE
    project: Path | None = None

    @property
    def is_delete(self) -> bool:
        return self.kind is ChangeKind.DELETE


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Marker:
    """挂在文件上的诊断信息"""

    file: Path
    service: str
    severity: Severity
    message: str
    line: int = 1
