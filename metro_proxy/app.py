# HTTP surface for the map dashboard.

import datetime
import logging
import os
import re
from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, make_response, request, send_from_directory

from .cache import PredictionCache, SnapshotCache, StaticDataCache
from .config import Settings, load_settings
from .errors import NotFound, ParseError, ProxyError, TransportError, UpstreamError
from .service import TransitData
from .upstream import WmataClient

log = logging.getLogger(__name__)

STATION_CODE_RE = re.compile(r"^[A-Z][0-9]{2}$")

STATIONS_GEOJSON = "Metro_Rail_Stations.geojson"
LINES_GEOJSON = "Metro_Rail_Lines.geojson"


def utc_now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


def add_cache_headers(resp: Response, ttl_sec: int) -> Response:
    resp.headers["Cache-Control"] = f"max-age={ttl_sec}"
    resp.headers["X-Cache-Ttl-Seconds"] = str(ttl_sec)
    return resp


def error_response(status: int, code: str, message: str) -> Response:
    payload: Dict[str, Any] = {
        "fetched_at": utc_now_iso(),
        "error": {"code": code, "message": message},
    }
    resp = jsonify(payload)
    resp.status_code = status
    resp.headers["Cache-Control"] = "no-store"
    return resp


def proxy_error_response(exc: ProxyError) -> Response:
    if isinstance(exc, NotFound):
        return error_response(404, "not_found", str(exc))
    if isinstance(exc, TransportError):
        return error_response(504, "upstream_unreachable", "WMATA request failed")
    if isinstance(exc, UpstreamError):
        return error_response(502, "upstream_error", f"WMATA returned status {exc.status}")
    if isinstance(exc, ParseError):
        return error_response(502, "upstream_invalid", "WMATA returned an unreadable response")
    return error_response(500, "internal_error", "Unexpected error")


def station_code_arg(required: bool) -> Optional[str]:
    code = request.args.get("code", "").strip()
    if not code:
        if required:
            raise ValueError("missing")
        return None
    if not STATION_CODE_RE.match(code):
        raise ValueError("invalid")
    return code


def bad_code_response(reason: str) -> Response:
    if reason == "missing":
        return error_response(400, "missing_parameter", "Missing station code")
    return error_response(400, "invalid_parameter", "Station codes look like A01")


def build_client(settings: Settings) -> WmataClient:
    return WmataClient(settings.api_key, settings.base_url, timeout=settings.timeout)


def build_transit_data(settings: Settings, client: Optional[WmataClient] = None) -> TransitData:
    client = client or build_client(settings)
    static = StaticDataCache(
        client,
        ttl_sec=settings.static_ttl_sec,
        collapse_sec=settings.static_collapse_sec,
    )
    predictions = PredictionCache(
        client,
        ttl_sec=settings.prediction_ttl_sec,
        collapse_sec=settings.prediction_collapse_sec,
    )
    return TransitData(static, predictions)


def create_app(settings: Optional[Settings] = None, data: Optional[TransitData] = None) -> Flask:
    settings = settings or load_settings()
    data = data or build_transit_data(settings)

    static_dir = os.path.abspath(settings.static_dir)

    app = Flask(__name__, static_folder=None)
    app.extensions["transit_data"] = data

    def cached_json(payload: Any, cache: SnapshotCache) -> Response:
        return add_cache_headers(jsonify(payload), cache.remaining_ttl())

    def failed(route: str, exc: Exception) -> Response:
        if isinstance(exc, ProxyError):
            log.warning("%s failed: %s", route, exc)
            return proxy_error_response(exc)
        log.exception("%s failed unexpectedly", route)
        return error_response(500, "internal_error", "Unexpected error")

    @app.after_request
    def add_common_headers(resp: Response) -> Response:
        origin = request.headers.get("Origin")
        if origin and origin in settings.cors_allowed_origins:
            resp.headers["Access-Control-Allow-Origin"] = origin
            resp.headers["Vary"] = "Origin"
            resp.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
            resp.headers["Access-Control-Allow-Headers"] = "Content-Type"
            resp.headers["Access-Control-Expose-Headers"] = "Cache-Control, X-Cache-Ttl-Seconds"
            resp.headers["Access-Control-Max-Age"] = "600"

        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        return resp

    @app.before_request
    def answer_preflight() -> Optional[Response]:
        if request.method == "OPTIONS":
            return make_response("", 204)
        return None

    @app.route("/stations", methods=["GET", "OPTIONS"])
    def stations() -> Response:
        try:
            payload = data.get_stations()
        except Exception as exc:
            return failed("/stations", exc)
        return cached_json(payload, data.static)

    @app.route("/entrances", methods=["GET", "OPTIONS"])
    def entrances() -> Response:
        try:
            code = station_code_arg(required=True)
        except ValueError as exc:
            return bad_code_response(str(exc))
        try:
            payload = data.get_entrances(code)  # type: ignore[arg-type]
        except Exception as exc:
            return failed("/entrances", exc)
        return cached_json(payload, data.static)

    @app.route("/lines", methods=["GET", "OPTIONS"])
    def lines() -> Response:
        try:
            payload = data.get_lines()
        except Exception as exc:
            return failed("/lines", exc)
        return cached_json(payload, data.static)

    @app.route("/parking", methods=["GET", "OPTIONS"])
    def parking() -> Response:
        try:
            code = station_code_arg(required=False)
        except ValueError as exc:
            return bad_code_response(str(exc))
        try:
            payload = data.get_parking(code)
        except Exception as exc:
            return failed("/parking", exc)
        return cached_json(payload, data.static)

    @app.route("/nexttrains", methods=["GET", "OPTIONS"])
    def next_trains() -> Response:
        try:
            code = station_code_arg(required=False)
        except ValueError as exc:
            return bad_code_response(str(exc))
        try:
            payload = data.get_predictions(code)
        except Exception as exc:
            return failed("/nexttrains", exc)
        return cached_json(payload, data.predictions)

    @app.route("/health", methods=["GET"])
    def health() -> Response:
        status = data.status()
        status["checked_at"] = utc_now_iso()
        resp = jsonify(status)
        resp.headers["Cache-Control"] = "no-store"
        return resp

    @app.route("/geojson/stations", methods=["GET", "OPTIONS"])
    def geojson_stations() -> Response:
        return send_from_directory(static_dir, STATIONS_GEOJSON, mimetype="application/geo+json")

    @app.route("/geojson/lines", methods=["GET", "OPTIONS"])
    def geojson_lines() -> Response:
        return send_from_directory(static_dir, LINES_GEOJSON, mimetype="application/geo+json")

    @app.route("/", methods=["GET"])
    def index() -> Response:
        return send_from_directory(static_dir, "index.html")

    return app
