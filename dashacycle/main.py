# dashacycle/main.py
from __future__ import annotations

import logging
import os
import traceback
from time import perf_counter
from typing import Any, Dict, Optional

from flask import Flask, Response, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from dashacycle.api.routes import api as api_bp
from dashacycle.core.engine import DashaEngine
from dashacycle.core.systems import list_systems
from dashacycle.utils.config import load_config
from dashacycle.utils.metrics import (
    CONTENT_TYPE_LATEST,
    GAUGE_APP_UP,
    MET_REQUESTS,
    MET_WARNINGS,
    REGISTRY,
    REQ_LATENCY,
    generate_latest,
    seed_routes,
)
from dashacycle.version import VERSION

_SEEDED_ROUTES = (
    "/", "/health", "/healthz", "/metrics",
    "/api/health", "/api/config", "/api/systems",
    "/api/dasha/periods", "/api/dasha/active", "/api/dasha/sandhi",
)

# ───────────────────────── helpers: logging & errors ─────────────────────────
def _configure_logging(app: Flask) -> None:
    gerr = logging.getLogger("gunicorn.error")
    if gerr.handlers:
        app.logger.handlers = gerr.handlers
        app.logger.setLevel(gerr.level)
        # engine module loggers follow gunicorn's level and handlers too
        pkg = logging.getLogger("dashacycle")
        pkg.handlers = gerr.handlers
        pkg.setLevel(gerr.level)
    else:
        logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))

def _register_errors(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        app.logger.warning("HTTP %s at %s %s: %s", e.code, request.method, request.path, e.description)
        return jsonify(
            ok=False,
            error="http_error",
            code=e.code,
            name=e.name,
            message=e.description,
            path=request.path,
        ), e.code

    @app.errorhandler(Exception)
    def _any(e: Exception):
        tb = traceback.format_exc()
        app.logger.error("UNHANDLED %s at %s %s\n%s", type(e).__name__, request.method, request.path, tb)
        return jsonify(
            ok=False,
            error="internal_error",
            type=type(e).__name__,
            message=str(e),
            path=request.path,
        ), 500

# ───────────────────────── health & utils ─────────────────────────
def _register_health(app: Flask) -> None:
    @app.route("/", methods=["GET"])
    def root():
        return jsonify(ok=True, service="dashacycle", health="/health", version=VERSION), 200

    @app.route("/health", methods=["GET"])
    @app.route("/healthz", methods=["GET"])
    def health():
        return jsonify(ok=True, status="ok", systems=[s.name for s in list_systems()]), 200

def _metrics_auth_ok() -> bool:
    auth = request.authorization
    user = os.getenv("METRICS_USER", "")
    pw = os.getenv("METRICS_PASS", "")
    return bool(
        auth and auth.type == "basic" and auth.username == user and auth.password == pw and user and pw
    )

def _tracked(path: str) -> bool:
    return path.startswith("/api/") or path in ("/", "/health", "/healthz", "/metrics")

# ───────────────────────── app factory ─────────────────────────
def create_app(cfg: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.json.sort_keys = False
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore

    _configure_logging(app)

    if cfg is None:
        cfg = load_config()
    engine = DashaEngine.from_config(cfg)
    app.extensions["dasha_config"] = cfg
    app.extensions["dasha_engine"] = engine

    seed_routes(*_SEEDED_ROUTES)
    MET_WARNINGS.labels(kind="depth_clamped").inc(0)
    MET_WARNINGS.labels(kind="outside_span").inc(0)
    GAUGE_APP_UP.set(1.0)

    @app.before_request
    def _before():
        p = request.path or ""
        if _tracked(p):
            MET_REQUESTS.labels(route=p).inc()
            g.t0 = perf_counter()

    @app.after_request
    def _after(resp):
        p = request.path or ""
        t0 = g.get("t0")
        if t0 is not None and _tracked(p) and p != "/metrics":
            REQ_LATENCY.labels(route=p).observe(perf_counter() - t0)
        return resp

    _register_health(app)
    _register_errors(app)
    app.register_blueprint(api_bp)

    @app.get("/favicon.ico")
    def _noop_favicon():
        return ("", 204)

    # /metrics (Basic Auth)
    @app.route("/metrics", methods=["GET"])
    def metrics_endpoint():
        if not _metrics_auth_ok():
            return Response("Unauthorized", 401, {"WWW-Authenticate": 'Basic realm="metrics"'})
        GAUGE_APP_UP.set(1.0)
        data = generate_latest(REGISTRY)
        return Response(data, mimetype=CONTENT_TYPE_LATEST)

    # CORS for browser UIs
    allowed_origin = os.environ.get("CORS_ALLOW_ORIGIN") or "*"
    CORS(
        app,
        resources={r"/.*": {"origins": allowed_origin}},
        supports_credentials=False,
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=600,
    )

    app.logger.info("App initialized; version=%s; %r", VERSION, engine)
    return app

# ───────────────────────── app instance ─────────────────────────
app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
