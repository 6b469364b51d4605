"""包管理 HTTP API（基于 Flask）

提供: 按项目根目录安装 / 升级 / 检查依赖，预览 bower 依赖发现结果，
      提交文件变更以刷新诊断标记。

启动方式: pkgmgmt serve --port 8888
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from pkgmgmt.core.exceptions import ExecutionError, NetworkFetchError, PkgMgmtError
from pkgmgmt.web.blueprints.packages_bp import packages_bp

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1 MB

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH
app.register_blueprint(packages_bp)


# =========================================================================
# 全局 JSON 错误处理
# =========================================================================


@app.errorhandler(HTTPException)
def handle_http_exception(exc):
    """将所有 HTTP 异常统一返回 JSON"""
    return jsonify(error=exc.description), exc.code


@app.errorhandler(PkgMgmtError)
def handle_pkgmgmt_error(exc: PkgMgmtError):
    """业务异常: 外部工具 / 网络失败返回 500，其余视为请求问题返回 400"""
    status = 500 if isinstance(exc, (ExecutionError, NetworkFetchError)) else 400
    logger.warning("请求失败 [%s]: %s", exc.code, exc.args[0])
    return jsonify(error=exc.args[0], code=exc.code), status


@app.errorhandler(Exception)
def handle_generic_exception(exc):  # noqa: ARG001
    """捕获未处理异常，返回 500 JSON"""
    logger.exception("未处理的异常")
    return jsonify(error="服务器内部错误"), 500


@app.route("/api/health")
def health():
    from pkgmgmt import __version__
    return jsonify(status="ok", version=__version__)


def run_server(port: int = 8888, debug: bool = False, host: str = "127.0.0.1") -> None:
    logger.info("pkgmgmt API 已启动: http://%s:%d", host, port)
    app.run(host=host, port=port, debug=debug)
