# dashacycle/api/routes.py
"""
Dasha API routes
- Systems catalogue
- Period tree (timeline), active periods at an instant, upcoming sandhis
- Ops: /api/health, /api/config

Notes:
- Birth comes as civil date/time/tz (IANA) or birth_utc (ISO-8601 with offset).
- Moon data comes as nakshatra_index (+ fraction) or a sidereal moon_longitude.
- Trees are shared through the engine's LRU cache; lazy expansion is thread-safe.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from dashacycle.core.engine import DashaEngine
from dashacycle.core.errors import ConfigurationError, MissingInputError
from dashacycle.core.systems import get_system, list_systems
from dashacycle.core.validators import (
    ValidationError,
    parse_dasha_payload,
    parse_instant,
    parse_lookahead,
)
from dashacycle.utils.metrics import MET_WARNINGS
from dashacycle.version import VERSION

log = logging.getLogger(__name__)
api = Blueprint("api", __name__)


def _json_error(code: str, details: Any = None, http: int = 400):
    out: Dict[str, Any] = {"ok": False, "error": code}
    if details is not None:
        out["details"] = details
    return jsonify(out), http


@api.errorhandler(ValidationError)
def _validation_error(e: ValidationError):
    return _json_error("validation_error", e.errors(), 400)


@api.errorhandler(MissingInputError)
def _missing_input(e: MissingInputError):
    return _json_error("missing_input", str(e), 422)


@api.errorhandler(ConfigurationError)
def _configuration_error(e: ConfigurationError):
    return _json_error("configuration_error", str(e), 400)


def _engine() -> DashaEngine:
    return current_app.extensions["dasha_engine"]


def _cfg() -> Dict[str, Any]:
    return current_app.extensions.get("dasha_config") or {}


def _body() -> Dict[str, Any]:
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object")
    return data


def _max_expand_depth() -> int:
    return int((_cfg().get("api") or {}).get("max_expand_depth", 2))


def _tree_for(body: Dict[str, Any]):
    p = parse_dasha_payload(body, max_expand_depth=_max_expand_depth())
    spec = get_system(p["system"])
    if p["max_depth"] is not None and p["max_depth"] > spec.max_depth:
        MET_WARNINGS.labels(kind="depth_clamped").inc()
    nodes = _engine().periods_for(spec, p["anchor"], p["repetitions"], p["max_depth"])
    return p, spec, nodes


def _when(body: Dict[str, Any], key: str) -> datetime:
    if body.get(key) is None:
        return datetime.now(timezone.utc)
    return parse_instant(body.get(key), key)


# ───────────────────────── health / ops ─────────────────────────
@api.get("/api/health")
def health():
    return jsonify({"ok": True, "status": "up", "version": VERSION}), 200


@api.get("/api/config")
def config_info():
    eng = _engine()
    b = eng.builder
    return jsonify({
        "ok": True,
        "engine": {
            "days_per_year": str(b.days_per_year),
            "quantum_seconds": b.quantum.total_seconds(),
            "max_span_years": str(b.max_span_years),
            "eager": b.eager,
        },
        "cache": {"capacity": eng.cache.capacity, "size": len(eng.cache)},
        "api": {"max_expand_depth": _max_expand_depth()},
        "version": VERSION,
    }), 200


# ───────────────────────── systems ─────────────────────────
@api.get("/api/systems")
def systems():
    return jsonify({"ok": True, "systems": [s.to_dict() for s in list_systems()]}), 200


# ───────────────────────── dasha ─────────────────────────
@api.post("/api/dasha/periods")
def dasha_periods():
    body = _body()
    p, spec, nodes = _tree_for(body)
    return jsonify({
        "ok": True,
        "system": spec.name,
        "anchor": p["anchor"].to_dict(),
        "starting_ruler": spec.starting_ruler(p["anchor"].nakshatra_index).name,
        "count": len(nodes),
        "span": {
            "start": nodes[0].start.isoformat() if nodes else None,
            "end": nodes[-1].end.isoformat() if nodes else None,
        },
        "periods": [n.to_dict(p["expand_depth"]) for n in nodes],
    }), 200


@api.post("/api/dasha/active")
def dasha_active():
    body = _body()
    at = _when(body, "at")
    p, spec, nodes = _tree_for(body)
    result = _engine().active_periods_at(spec, nodes, at, p["max_depth"])
    if not result:
        MET_WARNINGS.labels(kind="outside_span").inc()
    return jsonify({
        "ok": True,
        "system": spec.name,
        "anchor": p["anchor"].to_dict(),
        **result.to_dict(),
    }), 200


@api.post("/api/dasha/sandhi")
def dasha_sandhi():
    body = _body()
    start = _when(body, "from")
    lookahead = parse_lookahead(body)
    p, spec, nodes = _tree_for(body)
    depth = body.get("sandhi_depth", 1)
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 0:
        raise ValidationError({"loc": ["sandhi_depth"], "msg": "must be an integer >= 0", "type": "type_error.integer"})
    found = _engine().upcoming_sandhis(spec, nodes, start, lookahead, depth)
    return jsonify({
        "ok": True,
        "system": spec.name,
        "from": start.isoformat(),
        "lookahead_days": lookahead.total_seconds() / 86400.0,
        "count": len(found),
        "sandhis": [s.to_dict() for s in found],
    }), 200
