# astrochart/main.py
from __future__ import annotations

import logging
import os
import traceback
from time import perf_counter
from typing import Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from astrochart.api.routes import api as _routes_bp
from astrochart.core.chart import ChartComposer, ComposerConfig
from astrochart.core.errors import AstroError, InputError, RangeError, UnknownEntityError
from astrochart.core.validators import ValidationError
from astrochart.utils.config import load_config
from astrochart.utils.metrics import GAUGE_APP_UP, MET_ERRORS, MET_REQUESTS, REQ_LATENCY, seed
from astrochart.version import VERSION

_TRACKED = ("/", "/health", "/healthz", "/metrics")


# ───────────────────────── helpers: logging & errors ─────────────────────────
def _configure_logging(app: Flask) -> None:
    gerr = logging.getLogger("gunicorn.error")
    if gerr.handlers:
        app.logger.handlers = gerr.handlers
        app.logger.setLevel(gerr.level)
        logging.getLogger("astrochart").setLevel(gerr.level)
    else:
        logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))


def _status_for(e: AstroError) -> int:
    if isinstance(e, (ValidationError, RangeError)):
        return 422
    if isinstance(e, (InputError, UnknownEntityError)):
        return 400
    return 500


def _register_errors(app: Flask) -> None:
    @app.errorhandler(AstroError)
    def _domain(e: AstroError):
        status = _status_for(e)
        MET_ERRORS.labels(kind=e.kind).inc()
        if status >= 500:
            app.logger.error("%s at %s %s: %s", e.kind, request.method, request.path, e.message)
        else:
            app.logger.warning("%s at %s %s: %s", e.kind, request.method, request.path, e.message)
        body = e.to_dict()
        if isinstance(e, ValidationError):
            body["error"] = "validation_error"
        return jsonify(ok=False, path=request.path, **body), status

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


# ───────────────────────── health & metrics ─────────────────────────
def _register_health(app: Flask) -> None:
    @app.route("/", methods=["GET"])
    def root():
        return jsonify(ok=True, service="astrochart", version=VERSION, health="/health"), 200

    @app.route("/health", methods=["GET"])
    @app.route("/healthz", methods=["GET"])
    def health():
        return jsonify(ok=True, status="ok"), 200


def _metrics_auth_ok() -> bool:
    auth = request.authorization
    user = os.getenv("METRICS_USER", "")
    pw = os.getenv("METRICS_PASS", "")
    return bool(
        auth and auth.type == "basic" and auth.username == user and auth.password == pw and user and pw
    )


def _register_metrics(app: Flask) -> None:
    @app.before_request
    def _before():
        p = request.path or ""
        if p.startswith("/api/") or p in _TRACKED:
            MET_REQUESTS.labels(route=p).inc()
            request.environ["astrochart.t0"] = perf_counter()

    @app.after_request
    def _after(resp):
        t0 = request.environ.get("astrochart.t0")
        if t0 is not None and request.path != "/metrics":
            REQ_LATENCY.labels(route=request.path).observe(perf_counter() - t0)
        return resp

    @app.route("/metrics", methods=["GET"])
    def metrics_endpoint():
        if not _metrics_auth_ok():
            return Response("Unauthorized", 401, {"WWW-Authenticate": 'Basic realm="metrics"'})
        GAUGE_APP_UP.set(1.0)
        return Response(generate_latest(REGISTRY), mimetype=CONTENT_TYPE_LATEST)


# ───────────────────────── app factory ─────────────────────────
def _build_composer(config_path: Optional[str]) -> ChartComposer:
    return ChartComposer(ComposerConfig.from_mapping(load_config(config_path)))


def create_app(config_path: Optional[str] = None, composer: Optional[ChartComposer] = None) -> Flask:
    app = Flask(__name__)
    app.config["JSON_SORT_KEYS"] = False
    app.json.sort_keys = False
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore

    _configure_logging(app)

    comp = composer if composer is not None else _build_composer(config_path)
    app.extensions["astrochart.composer"] = comp

    seed()

    _register_health(app)
    _register_errors(app)
    _register_metrics(app)
    app.register_blueprint(_routes_bp)

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

    app.logger.info(
        "App initialized; version=%s house_system=%s ephemeris_dir=%s strict=%s",
        VERSION, comp.config.house_system.key, comp.config.ephemeris_dir, comp.config.strict_ephemeris,
    )
    return app


# ───────────────────────── app instance ─────────────────────────
app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
