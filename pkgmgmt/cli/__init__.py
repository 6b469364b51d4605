"""pkgmgmt 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import click

from pkgmgmt import __version__
from pkgmgmt.core.exceptions import PkgMgmtError, ValidationError
from pkgmgmt.services.container import MANAGER_NAMES, get_container, reset_container
from pkgmgmt.utils.logger import setup_logging


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


def _detect_manager(root: Path, name: str | None) -> str:
    """未指定 --manager 时按项目根目录下的清单自动判断"""
    if name:
        return name
    svc = _svc()
    for candidate in MANAGER_NAMES:
        if svc.manager(candidate).properties.is_folder_with_packages(root):
            return candidate
    raise ValidationError(f"{root} 下没有 bower.json 或 pubspec.yaml，请用 --manager 指定")


manager_option = click.option(
    "--manager", "manager_name", type=click.Choice(MANAGER_NAMES), default=None,
    help="包管理器（默认按清单自动判断）",
)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=None, help="配置文件路径 (YAML)")
def main(config_path: str | None) -> None:
    """pkgmgmt - bower / pub 依赖解析与拉取"""
    setup_logging(
        level=os.getenv("PKGMGMT_LOG_LEVEL", "INFO"),
        json_output=os.getenv("PKGMGMT_LOG_JSON", "") == "1",
    )
    if config_path:
        from pkgmgmt.core.config import init_config
        try:
            init_config(config_path)
        except PkgMgmtError as e:
            raise click.ClickException(str(e)) from e
        reset_container()


# 注册各领域子命令
from pkgmgmt.cli.cmd_packages import register as _reg_packages  # noqa: E402
from pkgmgmt.cli.cmd_refs import register as _reg_refs  # noqa: E402
from pkgmgmt.cli.cmd_misc import register as _reg_misc  # noqa: E402

_reg_packages(main)
_reg_refs(main)
_reg_misc(main)
