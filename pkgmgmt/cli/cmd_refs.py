"""CLI: 符号引用与文件互查"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from pkgmgmt.cli import _detect_manager, _svc, manager_option
from pkgmgmt.core.exceptions import PkgMgmtError


def register(group: click.Group) -> None:
    group.add_command(resolve_ref)
    group.add_command(ref_for)


def _resolver(root: str, manager_name: str | None):
    project = Path(root)
    try:
        name = _detect_manager(project, manager_name)
        return _svc().manager(name).get_resolver_for(project)
    except PkgMgmtError as e:
        raise click.ClickException(str(e)) from e


@click.command(name="resolve-ref")
@click.argument("ref")
@click.option("--root", default=".", type=click.Path(exists=True, file_okay=False), help="项目根目录")
@manager_option
def resolve_ref(ref: str, root: str, manager_name: str | None) -> None:
    """把引用（如 package:foo/a.dart）解析为文件路径"""
    path = _resolver(root, manager_name).resolve_ref_to_file(ref)
    if path is None:
        click.echo(f"无法解析: {ref}")
        sys.exit(1)
    click.echo(str(path))


@click.command(name="ref-for")
@click.argument("file", type=click.Path())
@click.option("--root", default=".", type=click.Path(exists=True, file_okay=False), help="项目根目录")
@manager_option
def ref_for(file: str, root: str, manager_name: str | None) -> None:
    """给出文件对应的引用"""
    project = Path(root)
    target = Path(file)
    if not target.is_absolute():
        target = project / target
    ref = _resolver(root, manager_name).get_reference_for(target)
    if ref is None:
        click.echo(f"没有可用的引用: {file}")
        sys.exit(1)
    click.echo(ref)
