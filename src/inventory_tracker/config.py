import os
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .logging import get_logger

log = get_logger("config")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5000
DEFAULT_API_KEY = "your_secret_api_key"
DEFAULT_CATALOG_BASE_URL = "https://products-test-aci.onrender.com"
DEFAULT_CATALOG_TIMEOUT = 30.0
DEFAULT_DB_FOLDER = os.path.join("var", "inventory")
DEFAULT_DB_FILENAME = "inventory.sqlite3"
_ROOT_MARKERS = (".git", "pyproject.toml", ".env")


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    db_path: str
    api_key: str
    catalog_base_url: str
    catalog_timeout: float
    cors_origins: Tuple[str, ...]


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir."""
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Minimal .env reader.

    - Reads key=value pairs, ignores comments (#/;) and blank lines.
    - Trims single/double quotes around the value.
    - Returns mapping; does not mutate environment.
    """
    env: Dict[str, str] = {}
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return env
    try:
        with open(path, "r", encoding="utf-8") as f:
            for raw in f:
                line = raw.strip()
                if not line or line.startswith("#") or line.startswith(";"):
                    continue
                if "=" not in line:
                    continue
                k, v = line.split("=", 1)
                k = k.strip()
                v = v.strip()
                if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
                    v = v[1:-1]
                env[k] = v.strip()
        log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    except OSError as e:
        log.warning(f"Failed reading .env: {e}")
    return env


def _int_or(value: Optional[str], default: int, key: str) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        log.warning(f"{key}={value!r} is not an integer; using {default}")
        return default


def _float_or(value: Optional[str], default: float, key: str) -> float:
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value)
    except ValueError:
        log.warning(f"{key}={value!r} is not a number; using {default}")
        return default
    if parsed <= 0:
        log.warning(f"{key} must be positive; using {default}")
        return default
    return parsed


def default_db_path(root_dir: Optional[str] = None) -> str:
    """Return `<project-root>/var/inventory/inventory.sqlite3`.

    The project root is the nearest directory at or above `root_dir` (default:
    cwd) holding `.git`, `pyproject.toml` or `.env`; without one, `root_dir`
    itself.
    """
    start = os.path.abspath(root_dir or os.getcwd())
    root = start
    while not any(os.path.exists(os.path.join(root, m)) for m in _ROOT_MARKERS):
        parent = os.path.dirname(root)
        if parent == root:
            root = start
            break
        root = parent
    return os.path.join(root, DEFAULT_DB_FOLDER, DEFAULT_DB_FILENAME)


def load_settings(dotenv_dir: Optional[str] = None) -> Settings:
    """Resolve settings from the environment, then `.env`, then defaults.

    The defaults are development values; the API key in particular is not
    meant for deployment and a warning is logged when it is used.
    """
    base_dir = dotenv_dir or os.getcwd()
    dotenv = _read_dotenv(base_dir)

    def _get(key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value is None:
            value = dotenv.get(key)
        return value.strip() if isinstance(value, str) else None

    api_key = _get("API_KEY") or DEFAULT_API_KEY
    if api_key == DEFAULT_API_KEY:
        log.warning("API_KEY not configured; using the development default key")

    db_path = _get("INVENTORY_DB_PATH")
    if db_path:
        db_path = os.path.abspath(os.path.expanduser(os.path.expandvars(db_path)))
    else:
        db_path = default_db_path(base_dir)

    origins_raw = _get("CORS_ORIGINS") or "*"
    origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip()) or ("*",)

    settings = Settings(
        host=_get("HOST") or DEFAULT_HOST,
        port=_int_or(_get("PORT"), DEFAULT_PORT, "PORT"),
        db_path=db_path,
        api_key=api_key,
        catalog_base_url=(_get("CATALOG_BASE_URL") or DEFAULT_CATALOG_BASE_URL).rstrip("/"),
        catalog_timeout=_float_or(_get("CATALOG_TIMEOUT"), DEFAULT_CATALOG_TIMEOUT, "CATALOG_TIMEOUT"),
        cors_origins=origins,
    )
    log.debug(f"Settings resolved: host={settings.host} port={settings.port} db={settings.db_path}")
    return settings
