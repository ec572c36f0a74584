# astrochart/utils/config.py
import logging
import os

import yaml

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/defaults.yaml"

_TRUTHY = ("1", "true", "yes", "on")


class AttrDict(dict):
    """Dict that also supports attribute access: cfg.ephemeris and cfg['ephemeris'] both work."""
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

def _section(data, key):
    sec = data.get(key)
    if not isinstance(sec, dict):
        sec = {}
        data[key] = sec
    return sec

def load_config(path: str = None):
    """
    Load YAML config from `path` (default: $ASTRO_CONFIG, then config/defaults.yaml)
    and apply environment overrides. A missing file yields the built-in defaults
    plus the overrides. This is the only place ASTRO_* settings are read:
      - ASTRO_EPHEMERIS_DIR     → ephemeris.data_dir
      - ASTRO_STRICT_EPHEMERIS  → ephemeris.strict
      - ASTRO_HOUSE_SYSTEM      → houses.default_system
      - ASTRO_KEPLER_TOL        → kepler.tolerance
      - ASTRO_KEPLER_MAX_ITER   → kepler.max_iter
    Returns an AttrDict for convenient access.
    """
    path = path or os.getenv("ASTRO_CONFIG") or DEFAULT_CONFIG_PATH
    if os.path.isfile(path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"config {path} must hold a mapping at the top level")
    else:
        log.info("no config at %s; using built-in defaults", path)
        data = {}

    eph_dir = os.getenv("ASTRO_EPHEMERIS_DIR")
    if eph_dir:
        _section(data, "ephemeris")["data_dir"] = eph_dir
    strict = os.getenv("ASTRO_STRICT_EPHEMERIS")
    if strict and strict.strip():
        _section(data, "ephemeris")["strict"] = strict.strip().lower() in _TRUTHY
    hs = os.getenv("ASTRO_HOUSE_SYSTEM")
    if hs:
        _section(data, "houses")["default_system"] = hs
    tol = os.getenv("ASTRO_KEPLER_TOL")
    if tol:
        _section(data, "kepler")["tolerance"] = float(tol)
    max_iter = os.getenv("ASTRO_KEPLER_MAX_ITER")
    if max_iter:
        _section(data, "kepler")["max_iter"] = int(max_iter)

    return _to_attr(data)
