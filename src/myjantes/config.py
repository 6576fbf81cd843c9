import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import dotenv_values

from .logging import get_logger
from .paths import default_store_path, expand_abs, find_upwards

log = get_logger("config")

DEFAULT_API_URL = "https://appmyjantes.mytoolsgroup.eu"
DEFAULT_TIMEOUT = 30
DEFAULT_POLL_INTERVAL = 30

# First match wins; EXTERNAL_API_URL is what the proxy server historically read.
_API_URL_KEYS = ("MYJANTES_API_URL", "EXTERNAL_API_URL", "EXPO_PUBLIC_API_URL")


@dataclass(frozen=True)
class Settings:
    api_url: str
    timeout: int
    verify_tls: bool
    store_path: str
    poll_interval: int


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Read the nearest .env above dotenv_dir; does not mutate environment."""
    path = find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    values = {k: v for k, v in dotenv_values(path).items() if v is not None}
    log.debug(f"Loaded {len(values)} key(s) from .env at {path}")
    return values


def _lookup(env: Dict[str, str], *keys: str) -> Optional[str]:
    for key in keys:
        v = os.environ.get(key)
        if v and v.strip():
            return v.strip()
    for key in keys:
        v = env.get(key)
        if v and v.strip():
            return v.strip()
    return None


def _as_int(raw: Optional[str], *, name: str, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        log.warning(f"{name}={raw!r} is not an integer; using {default}")
        return default
    if value <= 0:
        log.warning(f"{name} must be positive; using {default}")
        return default
    return value


def _as_bool(raw: Optional[str], default: bool = True) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


def load_settings(start_dir: Optional[str] = None) -> Settings:
    """Resolve settings from the environment, then the nearest .env file."""
    start = start_dir or os.getcwd()
    env = _read_dotenv(start)

    api_url = (_lookup(env, *_API_URL_KEYS) or DEFAULT_API_URL).rstrip("/")
    timeout = _as_int(_lookup(env, "MYJANTES_TIMEOUT"), name="MYJANTES_TIMEOUT", default=DEFAULT_TIMEOUT)
    poll = _as_int(
        _lookup(env, "MYJANTES_POLL_INTERVAL"),
        name="MYJANTES_POLL_INTERVAL",
        default=DEFAULT_POLL_INTERVAL,
    )
    verify = _as_bool(_lookup(env, "MYJANTES_VERIFY_TLS"))

    store_raw = _lookup(env, "MYJANTES_STORE_PATH")
    if store_raw:
        store_path = expand_abs(store_raw)
    else:
        store_path = default_store_path(start)

    settings = Settings(
        api_url=api_url,
        timeout=timeout,
        verify_tls=verify,
        store_path=store_path,
        poll_interval=poll,
    )
    log.debug(f"Settings resolved: {settings}")
    return settings
