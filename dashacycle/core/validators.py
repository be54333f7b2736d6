# dashacycle/core/validators.py
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, TypedDict, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dashacycle.core.anchor import BirthAnchor
from dashacycle.core.errors import MissingInputError

# ───────────────────────── errors ─────────────────────────

class ValidationError(ValueError):
    """Structured validator error for the API layer (has .errors())."""
    def __init__(self, details: Union[str, Dict[str, Any], List[Dict[str, Any]]]):
        if isinstance(details, str):
            self._details = [{"loc": [], "msg": details, "type": "value_error"}]
            super().__init__(details)
        elif isinstance(details, dict):
            self._details = [details]
            super().__init__(details.get("msg", "validation_error"))
        elif isinstance(details, list):
            self._details = details
            super().__init__(self._details[0]["msg"] if self._details else "validation_error")
        else:
            self._details = [{"loc": [], "msg": "validation_error", "type": "value_error"}]
            super().__init__("validation_error")

    def errors(self) -> List[Dict[str, Any]]:
        return list(self._details)


# ───────────────────────── helpers ─────────────────────────

def _err(loc: List[Any] | str, msg: str, typ: str = "value_error") -> Dict[str, Any]:
    return {"loc": [loc] if isinstance(loc, str) else loc, "msg": msg, "type": typ}

def _as_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        x = float(v)
    except (TypeError, ValueError):
        return None
    if x != x or x in (float("inf"), float("-inf")):
        return None
    return x

def _as_int(v: Any, loc: str, *, minimum: Optional[int] = None) -> Optional[int]:
    if v is None:
        return None
    if isinstance(v, bool):
        raise ValidationError(_err(loc, "must be an integer", "type_error.integer"))
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    if isinstance(v, str) and re.fullmatch(r"\s*-?\d+\s*", v):
        v = int(v)
    if not isinstance(v, int):
        raise ValidationError(_err(loc, "must be an integer", "type_error.integer"))
    if minimum is not None and v < minimum:
        raise ValidationError(_err(loc, f"must be >= {minimum}", "value_error.number.not_ge"))
    return v

def _validate_iana_tz(tz: str, loc: Optional[List[str]] = None) -> ZoneInfo:
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError([{
            "loc": loc or ["tz"],
            "msg": "must be a valid IANA zone like 'Asia/Kolkata'",
            "type": "value_error",
        }]) from None


# ───────────────────────── atomic parsers ─────────────────────────

_TIME_RE = re.compile(r"^\s*(?P<h>\d{1,2}):(?P<m>\d{2})(?::(?P<s>\d{2})(?:\.(?P<f>\d+))?)?\s*$")

def _normalize_time_hms(s: str) -> str:
    """
    Accept 'HH:MM', 'HH:MM:SS', or 'HH:MM:SS.frac'. Allow leap-second (SS==60).
    Disallow 24:00 except exactly '24:00:00'. Return canonical 'HH:MM:SS[.frac]'.
    """
    m = _TIME_RE.match(s or "")
    if not m:
        raise ValidationError(_err("time", "time must be 'HH:MM' or 'HH:MM:SS[.frac]'", "value_error.time"))
    hh = int(m.group("h")); mm = int(m.group("m"))
    ss = int(m.group("s") or 0); frac = (m.group("f") or "")
    if not (0 <= hh <= 24 and 0 <= mm <= 59 and 0 <= ss <= 60):
        raise ValidationError(_err("time", "time fields out of range", "value_error.time"))
    if hh == 24:
        if not (mm == 0 and ss == 0 and frac == ""):
            raise ValidationError(_err("time", "24:00:00 is only allowed exactly", "value_error.time"))
        return "24:00:00"
    if m.group("s") is None:
        return f"{hh:02d}:{mm:02d}:00"
    return f"{hh:02d}:{mm:02d}:{ss:02d}" + (f".{frac}" if frac else "")

def parse_date(s: str) -> date:
    try:
        return datetime.strptime(s, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(_err("date", "date must be 'YYYY-MM-DD'", "value_error.date"))

def parse_time_str(s: str) -> str:
    return _normalize_time_hms(s)

def civil_to_utc(d: date, time_hh_mm_ss: str, tz: str) -> datetime:
    """
    Local civil (date, time, IANA tz) -> aware UTC datetime.
    '24:00:00' rolls to the next day; a leap second (SS==60) lands on the next second.
    """
    zone = _validate_iana_tz(str(tz).strip())
    t_norm = parse_time_str(time_hh_mm_ss)
    if t_norm == "24:00:00":
        d = d + timedelta(days=1)
        hh = mm = ss = 0
        frac = "0"
    else:
        m = _TIME_RE.match(t_norm)
        assert m is not None  # guaranteed by parse_time_str
        hh = int(m.group("h")); mm = int(m.group("m"))
        ss = int(m.group("s") or 0); frac = (m.group("f") or "0")

    add_one_sec = False
    if ss == 60:
        ss = 59
        add_one_sec = True
    us = int((frac + "000000")[:6])

    dt_local = datetime(d.year, d.month, d.day, hh, mm, ss, us, tzinfo=zone)
    if add_one_sec:
        dt_local += timedelta(seconds=1)
    return dt_local.astimezone(timezone.utc)

def parse_instant(val: Any, loc: str) -> datetime:
    """ISO-8601 with an explicit offset (or trailing 'Z') -> aware UTC datetime."""
    if not isinstance(val, str) or not val.strip():
        raise ValidationError(_err(loc, "required ISO-8601 string", "value_error"))
    s = val.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        raise ValidationError(_err(loc, "must be ISO-8601 like '1990-01-01T06:30:00+05:30'", "value_error.datetime"))
    if dt.tzinfo is None or dt.utcoffset() is None:
        raise ValidationError(_err(loc, "must carry a UTC offset or 'Z'", "value_error.datetime"))
    return dt.astimezone(timezone.utc)


# ───────────────────────── dasha payloads ─────────────────────────

class DashaPayload(TypedDict, total=False):
    system: str
    anchor: BirthAnchor
    repetitions: Optional[int]
    max_depth: Optional[int]
    expand_depth: int

def parse_birth(body: Dict[str, Any]) -> datetime:
    if body.get("birth_utc") is not None:
        return parse_instant(body.get("birth_utc"), "birth_utc")

    date_s = body.get("date")
    time_s = body.get("time")
    errs = []
    if not isinstance(date_s, str) or not date_s.strip():
        errs.append(_err("date", "required string (or provide birth_utc)", "value_error"))
    if not isinstance(time_s, str) or not time_s.strip():
        errs.append(_err("time", "required string (or provide birth_utc)", "value_error"))
    if errs:
        raise ValidationError(errs)

    tz = body.get("tz") or body.get("place_tz") or body.get("timezone") or "UTC"
    if not isinstance(tz, str) or not tz.strip():
        raise ValidationError(_err("tz", "must be a string (IANA)", "value_error"))
    return civil_to_utc(parse_date(date_s.strip()), time_s, tz)

def parse_anchor(body: Dict[str, Any]) -> BirthAnchor:
    """
    Birth instant plus Moon data: either nakshatra_index (+ fraction) or
    moon_longitude (sidereal degrees). Moon data absent -> MissingInputError.
    """
    birth = parse_birth(body)

    if body.get("moon_longitude") is not None:
        lon = _as_float(body.get("moon_longitude"))
        if lon is None:
            raise ValidationError(_err("moon_longitude", "must be a finite number (degrees)", "type_error.float"))
        return BirthAnchor.from_moon_longitude(birth, lon)

    if body.get("nakshatra_index") is None:
        raise MissingInputError("provide 'nakshatra_index' (+ 'fraction') or 'moon_longitude'")
    idx = _as_int(body.get("nakshatra_index"), "nakshatra_index")
    frac_raw = body.get("fraction", 0.0)
    frac = _as_float(frac_raw)
    if frac is None:
        raise ValidationError(_err("fraction", "must be a finite number in [0, 1)", "type_error.float"))
    return BirthAnchor(birth=birth, nakshatra_index=idx, fraction=frac)

def parse_dasha_payload(body: Dict[str, Any], max_expand_depth: int = 2) -> DashaPayload:
    """
    Normalize inputs shared by /api/dasha/periods, /active and /sandhi.
    Unknown systems are left to the engine (ConfigurationError).
    """
    if not isinstance(body, dict):
        raise ValidationError("payload must be an object")

    system = body.get("system", "vimshottari")
    if not isinstance(system, str) or not system.strip():
        raise ValidationError(_err("system", "must be a system name", "value_error"))

    repetitions = _as_int(body.get("repetitions"), "repetitions", minimum=1)
    max_depth = _as_int(body.get("max_depth"), "max_depth", minimum=0)
    expand_depth = _as_int(body.get("expand_depth"), "expand_depth", minimum=0)
    if expand_depth is None:
        expand_depth = 0
    if expand_depth > max_expand_depth:
        raise ValidationError(_err("expand_depth", f"must be <= {max_expand_depth}", "value_error.number.not_le"))

    return {
        "system": system.strip().lower(),
        "anchor": parse_anchor(body),
        "repetitions": repetitions,
        "max_depth": max_depth,
        "expand_depth": expand_depth,
    }

def parse_lookahead(body: Dict[str, Any], default_days: float = 365.0) -> timedelta:
    raw = body.get("lookahead_days", default_days)
    days = _as_float(raw)
    if days is None or days <= 0:
        raise ValidationError(_err("lookahead_days", "must be a positive number of days", "value_error"))
    if days > 36525:
        raise ValidationError(_err("lookahead_days", "must be <= 36525 (100 years)", "value_error"))
    return timedelta(days=days)


__all__ = [
    "ValidationError",
    "parse_date",
    "parse_time_str",
    "parse_instant",
    "civil_to_utc",
    "parse_birth",
    "parse_anchor",
    "parse_dasha_payload",
    "parse_lookahead",
]
