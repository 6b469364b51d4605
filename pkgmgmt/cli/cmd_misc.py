"""CLI: 杂项命令（HTTP 服务、配置查看）"""

from __future__ import annotations

import click
import yaml


def register(group: click.Group) -> None:
    group.add_command(serve)
    group.add_command(show_config)


@click.command()
@click.option("--port", default=8888, help="监听端口")
@click.option("--host", default="127.0.0.1", help="监听地址")
def serve(port: int, host: str) -> None:
    """启动包管理 HTTP API"""
    from pkgmgmt.web.app import run_server
    run_server(port=port, host=host)


@click.command(name="config")
def show_config() -> None:
    """输出当前生效的配置 (YAML)"""
    from pkgmgmt.core.config import get_config
    click.echo(yaml.safe_dump(get_config().to_dict(), allow_unicode=True, sort_keys=False))
