"""统一异常体系

所有业务异常继承 PkgMgmtError，每个异常类携带稳定的 code。
CLI 层据此输出友好提示，Web 层据此映射 HTTP 状态码。
"""

from __future__ import annotations


class PkgMgmtError(Exception):
    """包管理基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {self.args[0]}"


class ConfigError(PkgMgmtError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(PkgMgmtError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"


class MalformedManifestError(PkgMgmtError):
    """清单文件无法解析，或顶层结构不是映射"""

    code = "MALFORMED_MANIFEST"


class ManifestReadError(PkgMgmtError):
    """清单文件无法读取"""

    code = "MANIFEST_READ_FAILURE"


class UnresolvedDependencyError(PkgMgmtError):
    """策略无法确定依赖的拉取位置（非致命，仅在要求至少解析一个依赖时抛出）"""

    code = "UNRESOLVED_DEPENDENCY"


class DirectoryCreationError(PkgMgmtError):
    """包目录创建 / 清理失败"""

    code = "DIRECTORY_CREATION_FAILURE"


class NetworkFetchError(PkgMgmtError):
    """远程下载失败"""

    code = "NETWORK_FETCH_FAILURE"


class ArchiveWriteError(PkgMgmtError):
    """归档解压写入失败"""

    code = "ARCHIVE_WRITE_FAILURE"


class ExecutionError(PkgMgmtError):
    """子进程执行失败"""

    code = "EXECUTION_ERROR"


class ExternalToolError(ExecutionError):
    """外部包管理工具（如 pub）返回非零退出码"""

    code = "EXTERNAL_TOOL_ERROR"


class CloneCancelledError(ExecutionError):
    """git clone 被主动取消"""

    code = "GIT_CLONE_CANCEL"


class PreconditionViolation(PkgMgmtError):
    """调用方违反前置条件（编程错误，不应被捕获）"""

    code = "PRECONDITION_VIOLATION"
