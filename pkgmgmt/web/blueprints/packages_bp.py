"""包管理 API Blueprint

    GET  /api/packages/managers
    POST /api/packages/<manager>/install   {"root": ..., "require_resolved": false}
    POST /api/packages/<manager>/upgrade   {"root": ..., "require_resolved": false}
    GET  /api/packages/<manager>/status?root=...
    POST /api/packages/<manager>/changes   {"root": ..., "changes": [{"path": ..., "kind": "change"}]}
    POST /api/packages/bower/discover      {"root": ...}
    POST /api/packages/bower/cancel
"""

from __future__ import annotations

from pathlib import Path

from flask import Blueprint, Response, request

from pkgmgmt.core.models import ChangeDelta, ChangeKind, FetchReport
from pkgmgmt.services.container import MANAGER_NAMES
from pkgmgmt.web.responses import bad_request, not_found, ok

packages_bp = Blueprint("packages", __name__, url_prefix="/api/packages")


def _container():  # type: ignore[no-untyped-def]
    from pkgmgmt.services.container import get_container
    return get_container()


def _project_root(raw: object) -> Path | None:
    if not raw or not isinstance(raw, str):
        return None
    root = Path(raw)
    return root if root.is_dir() else None


@packages_bp.route("/managers", methods=["GET"])
def list_managers() -> Response:
    svc = _container()
    managers = []
    for name in MANAGER_NAMES:
        props = svc.manager(name).properties
        managers.append({
            "name": name,
            "spec_file": props.package_spec_file_name,
            "packages_dir": props.packages_dir_name,
        })
    return ok({"managers": managers})


def _install_or_upgrade(manager: str, upgrade: bool) -> tuple[Response, int] | Response:
    if manager not in MANAGER_NAMES:
        return not_found(f"包管理器 {manager} ")
    body = request.get_json(silent=True) or {}
    root = _project_root(body.get("root"))
    if root is None:
        return bad_request("需要提供存在的项目目录 root")

    mgr = _container().manager(manager)
    action = mgr.upgrade_packages if upgrade else mgr.install_packages
    if manager == "bower":
        report: FetchReport = action(root, require_resolved=bool(body.get("require_resolved")))
        return ok({"success": report.success, "report": report.to_dict()})

    result = action(root)
    if result is None:
        return ok({"success": True, "skipped": True})
    return ok({"success": True, "output": result.output_lines()})


@packages_bp.route("/<manager>/install", methods=["POST"])
def install(manager: str) -> tuple[Response, int] | Response:
    return _install_or_upgrade(manager, upgrade=False)


@packages_bp.route("/<manager>/upgrade", methods=["POST"])
def upgrade(manager: str) -> tuple[Response, int] | Response:
    return _install_or_upgrade(manager, upgrade=True)


@packages_bp.route("/<manager>/status", methods=["GET"])
def status(manager: str) -> tuple[Response, int] | Response:
    if manager not in MANAGER_NAMES:
        return not_found(f"包管理器 {manager} ")
    root = _project_root(request.args.get("root"))
    if root is None:
        return bad_request("需要提供存在的项目目录 root")
    missing = _container().manager(manager).are_packages_installed(root)
    if missing is True:
        return ok({"installed": True, "missing": None})
    return ok({"installed": False, "missing": missing})


@packages_bp.route("/<manager>/changes", methods=["POST"])
def changes(manager: str) -> tuple[Response, int] | Response:
    """把文件变更交给构建器，返回清单上的诊断标记"""
    if manager not in MANAGER_NAMES:
        return not_found(f"包管理器 {manager} ")
    body = request.get_json(silent=True) or {}
    root = _project_root(body.get("root"))
    if root is None:
        return bad_request("需要提供存在的项目目录 root")

    deltas = []
    for item in body.get("changes") or []:
        if not isinstance(item, dict) or not item.get("path"):
            return bad_request("changes 中每一项都需要 path")
        try:
            kind = ChangeKind(item.get("kind", "change"))
        except ValueError:
            return bad_request(f"不支持的变更类型: {item.get('kind')}")
        deltas.append(ChangeDelta(path=root / item["path"], kind=kind, project=root))

    svc = _container()
    mgr = svc.manager(manager)
    mgr.get_builder().build(deltas)

    spec_file = root / mgr.properties.package_spec_file_name
    markers = svc.markers.markers_for(spec_file, mgr.properties.package_service_name)
    return ok({
        "self_reference": mgr.get_self_reference(root),
        "markers": [
            {"severity": m.severity.value, "message": m.message, "line": m.line}
            for m in markers
        ],
    })


@packages_bp.route("/bower/discover", methods=["POST"])
def discover() -> tuple[Response, int] | Response:
    body = request.get_json(silent=True) or {}
    root = _project_root(body.get("root"))
    if root is None:
        return bad_request("需要提供存在的项目目录 root")
    found = _container().bower.discover_packages(root)
    return ok({
        "packages": [
            {
                "name": p.name,
                "declared": p.declared_expr,
                "kind": p.resolution.kind.value,
                "comment": p.resolution.comment,
                "path": p.path,
                "branch": p.branch,
            }
            for p in found.values()
        ],
    })


@packages_bp.route("/bower/cancel", methods=["POST"])
def cancel() -> tuple[Response, int] | Response:
    """终止进行中的 bower 克隆（zip 下载不可取消）"""
    _container().bower.cancel()
    return ok({"cancelled": True})
