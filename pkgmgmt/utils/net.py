"""网络工具: URL 安全校验 + 远程文件下载"""

from __future__ import annotations

import http.client
import logging
import urllib.error
import urllib.request
from urllib.parse import urlparse

from pkgmgmt.core.exceptions import NetworkFetchError, ValidationError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))

DEFAULT_TIMEOUT = 60


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


def download_bytes(url: str, *, timeout: int = DEFAULT_TIMEOUT, context: str = "") -> bytes:
    """下载远程文件内容

    Raises:
        ValidationError: URL 协议不合法
        NetworkFetchError: HTTP 错误、连接失败、超时或响应不完整
    """
    validate_url_scheme(url, context=context)
    logger.debug("下载: %s", url)
    try:
        with urllib.request.urlopen(url, timeout=timeout) as resp:  # nosec B310
            return resp.read()
    except urllib.error.HTTPError as e:
        raise NetworkFetchError(f"下载失败 (HTTP {e.code}): {url}") from e
    except (urllib.error.URLError, OSError, http.client.HTTPException) as e:
        # HTTPException: 响应截断 (IncompleteRead) / 状态行异常等
        raise NetworkFetchError(f"下载失败: {url} - {e}") from e


def download_text(url: str, *, timeout: int = DEFAULT_TIMEOUT, context: str = "") -> str:
    """下载远程文本文件（UTF-8）"""
    data = download_bytes(url, timeout=timeout, context=context)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise NetworkFetchError(f"远程文件不是 UTF-8 文本: {url}") from e
