"""CLI: 包安装 / 升级 / 检查 / 发现"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from pkgmgmt.cli import _detect_manager, _svc, manager_option
from pkgmgmt.core.exceptions import PkgMgmtError
from pkgmgmt.core.models import FetchReport
from pkgmgmt.core.progress import LoggingProgressMonitor


def register(group: click.Group) -> None:
    group.add_command(install)
    group.add_command(upgrade)
    group.add_command(check)
    group.add_command(discover)


def _run(root: str, manager_name: str | None, upgrade_mode: bool, require_resolved: bool) -> None:
    project = Path(root)
    try:
        name = _detect_manager(project, manager_name)
        mgr = _svc().manager(name)
        monitor = LoggingProgressMonitor()
        action = mgr.upgrade_packages if upgrade_mode else mgr.install_packages
        if name == "bower":
            result = action(project, monitor, require_resolved=require_resolved)
        else:
            result = action(project, monitor)
    except PkgMgmtError as e:
        raise click.ClickException(str(e)) from e

    if isinstance(result, FetchReport):
        _echo_report(result)
        if not result.success:
            sys.exit(1)
    elif result is None:
        click.echo("已跳过（当前平台不运行 pub）")
    else:
        click.echo("完成")


def _echo_report(report: FetchReport) -> None:
    click.echo(
        f"{report.mode.value}: 发现 {len(report.discovered)}, "
        f"拉取 {len(report.fetched)}, 跳过 {len(report.skipped)}, 失败 {len(report.failed)}"
    )
    for name, err in report.failed.items():
        click.echo(f"  失败 {name}: {err}")
    for line in report.comments.unresolved:
        click.echo(f"  无法解析 {line}")


@click.command()
@click.argument("root", default=".", type=click.Path(exists=True, file_okay=False))
@manager_option
@click.option("--require-resolved", is_flag=True, help="一个依赖都无法解析时报错（仅 bower）")
def install(root: str, manager_name: str | None, require_resolved: bool) -> None:
    """安装依赖（已存在的包目录保持不动）"""
    _run(root, manager_name, False, require_resolved)


@click.command()
@click.argument("root", default=".", type=click.Path(exists=True, file_okay=False))
@manager_option
@click.option("--require-resolved", is_flag=True, help="一个依赖都无法解析时报错（仅 bower）")
def upgrade(root: str, manager_name: str | None, require_resolved: bool) -> None:
    """升级依赖（强制重新拉取所有包）"""
    _run(root, manager_name, True, require_resolved)


@click.command()
@click.argument("root", default=".", type=click.Path(exists=True, file_okay=False))
@manager_option
def check(root: str, manager_name: str | None) -> None:
    """检查清单中的依赖是否都已安装"""
    project = Path(root)
    try:
        name = _detect_manager(project, manager_name)
        missing = _svc().manager(name).are_packages_installed(project)
    except PkgMgmtError as e:
        raise click.ClickException(str(e)) from e
    if missing is True:
        click.echo("所有依赖均已安装。")
        return
    click.echo(f"缺少依赖: {missing}")
    sys.exit(1)


@click.command()
@click.argument("root", default=".", type=click.Path(exists=True, file_okay=False))
def discover(root: str) -> None:
    """发现 bower 传递依赖并显示解析结果（不写磁盘）"""
    try:
        found = _svc().bower.discover_packages(Path(root))
    except PkgMgmtError as e:
        raise click.ClickException(str(e)) from e
    if not found:
        click.echo("没有声明任何依赖。")
        return
    for pkg in found.values():
        source = f"{pkg.path}#{pkg.branch}" if pkg.is_resolved else "-"
        click.echo(f"  {pkg.name:24s} {pkg.resolution.kind.value:10s} {source}")
