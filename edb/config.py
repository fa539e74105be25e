"""
Configuration for edb

Layering, lowest first:
  built-in defaults → $XDG_CONFIG_HOME/edb/config.yaml → nearest .edb file
  (profile) → EDB_* environment variables → command-line overrides.
The result is one frozen Settings value handed to every component.
"""
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Optional

import yaml

from .core.paths import normalize_remote_path
from .errors import ConfigError

PROJECT_FILE = ".edb"

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS
# ══════════════════════════════════════════════════════════════════════════════

DEFAULT_SERVER_URL = "http://localhost:8080/exist"
DEFAULT_USER = "admin"
DEFAULT_PASSWORD = "password"
DEFAULT_COLLECTION = "/db/apps/sympa"
DEFAULT_LOCAL_DIR = "./sympa"
DEFAULT_BACKUP_DIR = "./backups"
DEFAULT_BACKUP_KEEP = 10  # max number of backups to keep, 0 = unlimited
DEFAULT_TIMEOUT = 30.0    # seconds per HTTP request

# environment variable → profile key
ENV_KEYS = {
    "EDB_SERVER_URL": "server",
    "EDB_USER": "user",
    "EDB_PASS": "password",
    "EDB_COLLECTION": "collection",
    "EDB_LOCAL_DIR": "local_dir",
    "EDB_BACKUP_DIR": "backup_dir",
    "EDB_BACKUP_KEEP": "backup_keep",
    "EDB_XAR_NAME": "app_name",
    "EDB_APP_NAME": "app_name",
    "EDB_TIMEOUT": "timeout",
}


@dataclass(frozen=True)
class Settings:
    server_url: str = DEFAULT_SERVER_URL
    user: str = DEFAULT_USER
    password: str = field(default=DEFAULT_PASSWORD, repr=False)
    collection: str = DEFAULT_COLLECTION
    local_dir: Path = Path(DEFAULT_LOCAL_DIR)
    backup_dir: Path = Path(DEFAULT_BACKUP_DIR)
    backup_keep: int = DEFAULT_BACKUP_KEEP
    app_name: str = "sympa"
    timeout: float = DEFAULT_TIMEOUT
    workers: int = 1
    require_clean_backup: bool = False

    def with_overrides(self, **kw) -> "Settings":
        """Copy with the non-None entries of *kw* applied."""
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in kw.items() if v is not None and k in known})


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/edb/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for edb."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "edb"
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "edb"
    return Path.home() / ".config" / "edb"


def load_global_config() -> dict:
    """Load the global config; a missing file means no global defaults."""
    cfg_path = get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    return load_edb_file(cfg_path)


# ══════════════════════════════════════════════════════════════════════════════
#  PROJECT CONFIG FILE  ── .edb (searched upward)
# ══════════════════════════════════════════════════════════════════════════════

def find_edb_file(start: Optional[Path] = None) -> Optional[Path]:
    """
    Search upward from *start* (default: cwd) for a .edb YAML file.
    Returns the Path if found, or None if no .edb exists in any parent.
    """
    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / PROJECT_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_edb_file(path: Path) -> dict:
    """Parse a YAML config file and return its contents as a dict."""
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    return data


def get_profile(data: dict, profile_name: str = "default") -> dict:
    """
    Extract a named profile from a .edb or config.yaml data dict.
    Falls back to the first profile if the named one is not found.
    Returns a flat profile dict merged with top-level defaults.
    """
    defaults = data.get("defaults", {}) or {}
    profiles = data.get("profiles", []) or []
    if not profiles:
        return dict(defaults)
    profile = next((p for p in profiles if p.get("name") == profile_name), None)
    if profile is None:
        profile = profiles[0]
    merged = dict(defaults)
    merged.update(profile)
    return merged


def env_profile(env=None) -> dict:
    """Profile keys taken from EDB_* environment variables."""
    env = os.environ if env is None else env
    return {key: env[var] for var, key in ENV_KEYS.items() if env.get(var)}


# ══════════════════════════════════════════════════════════════════════════════
#  BUILD SETTINGS
# ══════════════════════════════════════════════════════════════════════════════

def _or_default(value, default):
    """An empty YAML key (None) counts as missing."""
    return default if value is None else value


def _as_int(key: str, value) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}") from None
    if n < 0:
        raise ConfigError(f"{key} must not be negative, got {n}")
    return n


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _resolve(base: Path, value) -> Path:
    p = Path(str(value)).expanduser()
    return p if p.is_absolute() else (base / p).resolve()


def build_settings(profile: dict, base_dir: Optional[Path] = None) -> Settings:
    """
    Turn a flat profile dict into Settings.
    Supports keys: server (or server_url), user (or username), password,
                   collection, local_dir, backup_dir, backup_keep, app_name,
                   timeout, workers, require_clean_backup.
    Relative directories are resolved against *base_dir* (default: cwd).
    """
    base = Path(base_dir) if base_dir else Path.cwd()
    collection = normalize_remote_path(profile.get("collection", DEFAULT_COLLECTION))
    app_name = str(profile.get("app_name") or "") or collection.rstrip("/").rsplit("/", 1)[-1]
    if not app_name:
        raise ConfigError("app_name is empty and cannot be derived from collection '/'")

    try:
        timeout = float(profile.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError):
        raise ConfigError(f"timeout must be a number, got {profile.get('timeout')!r}") from None

    return Settings(
        server_url=str(profile.get("server") or profile.get("server_url") or DEFAULT_SERVER_URL),
        user=str(profile.get("user") or profile.get("username") or DEFAULT_USER),
        password=str(_or_default(profile.get("password"), DEFAULT_PASSWORD)),
        collection=collection,
        local_dir=_resolve(base, profile.get("local_dir", DEFAULT_LOCAL_DIR)),
        backup_dir=_resolve(base, profile.get("backup_dir", DEFAULT_BACKUP_DIR)),
        backup_keep=_as_int("backup_keep", profile.get("backup_keep", DEFAULT_BACKUP_KEEP)),
        app_name=app_name,
        timeout=timeout,
        workers=max(1, _as_int("workers", profile.get("workers", 1))),
        require_clean_backup=_as_bool(profile.get("require_clean_backup", False)),
    )


def load_settings(profile_name: str = "default", start: Optional[Path] = None,
                  env=None):
    """
    Resolve Settings for *profile_name* from every config layer.
    Returns (settings, path of the .edb file used or None).
    """
    profile = dict(load_global_config().get("defaults", {}) or {})
    base_dir = None
    edb_path = find_edb_file(start)
    if edb_path is not None:
        profile.update(get_profile(load_edb_file(edb_path), profile_name))
        base_dir = edb_path.parent
    profile.update(env_profile(env))
    return build_settings(profile, base_dir), edb_path
