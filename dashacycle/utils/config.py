# dashacycle/utils/config.py
import copy
import os
import yaml

DEFAULT_CONFIG_PATH = "config/defaults.yaml"

DEFAULTS = {
    "engine": {
        "days_per_year": "365.25",
        "rounding_unit": "day",
        "max_span_years": 500,
        "eager": False,
    },
    "cache": {
        "capacity": 256,
    },
    "api": {
        "max_expand_depth": 2,
    },
}

class AttrDict(dict):
    """Dict that also supports attribute access: cfg.engine and cfg['engine'] both work."""
    def __getattr__(self, item):
        try:
            return self[item]
        except KeyError as e:
            raise AttributeError(item) from e
    def __setattr__(self, key, value):
        self[key] = value

def _to_attr(obj):
    if isinstance(obj, dict):
        return AttrDict({k: _to_attr(v) for k, v in obj.items()})
    if isinstance(obj, list):
        return [_to_attr(x) for x in obj]
    return obj

def _merge(base, over):
    for k, v in (over or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _merge(base[k], v)
        else:
            base[k] = v
    return base

def _env_overrides(data):
    eng = data.setdefault("engine", {})
    dpy = os.getenv("DASHA_DAYS_PER_YEAR")
    if dpy:
        eng["days_per_year"] = dpy
    unit = os.getenv("DASHA_ROUNDING_UNIT")
    if unit:
        eng["rounding_unit"] = unit
    span = os.getenv("DASHA_MAX_SPAN_YEARS")
    if span:
        eng["max_span_years"] = span
    return data

def load_config(path=None):
    """
    Load YAML config merged over built-in DEFAULTS.
      - path: explicit file; else $DASHA_CONFIG; else config/defaults.yaml.
        A missing default file is fine (defaults apply); a missing explicit file is not.
    Env overrides (applied last):
      - DASHA_DAYS_PER_YEAR, DASHA_ROUNDING_UNIT, DASHA_MAX_SPAN_YEARS
    Returns an AttrDict for convenient access.
    """
    data = copy.deepcopy(DEFAULTS)
    explicit = path or os.getenv("DASHA_CONFIG")
    cfg_path = explicit or DEFAULT_CONFIG_PATH
    if explicit or os.path.exists(cfg_path):
        with open(cfg_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"config root must be a mapping: {cfg_path}")
        _merge(data, loaded)
    return _to_attr(_env_overrides(data))
