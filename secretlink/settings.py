import base64
import json
import logging
import os
import secrets
from pathlib import Path

from . import utils
from .models import SecretSettings

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "/secret/data"

# env var -> (setting, parser)
_ENV_MAPPING = {
    "APP_URL": ("app_url", str),
    "APP_KEY": ("app_key", str),
    "SECRET_DEFAULT_DISK": ("default_disk", str),
    "SECRET_DEFAULT_EXPIRY": ("default_expiry", utils.parse_minutes),
    "SECRET_DELETE_AFTER_DOWNLOAD": ("delete_after_download", utils.parse_bool),
    "FILESYSTEM_DEFAULT_DISK": ("filesystem_default", str),
    "SECRET_DISKS": ("disks", utils.parse_disks),
    "SECRET_ROUTE_PATH": ("route_path", str),
    "SECRET_URL_STRATEGY": ("url_strategy", str),
    "SECRET_PROXY_TIMEOUT": ("proxy_timeout", float),
    "SECRET_CHUNK_SIZE": ("chunk_size", utils.parse_file_size),
    "SECRET_DATA_DIR": ("data_dir", str),
    "SECRET_CLEANUP_INTERVAL": ("cleanup_interval", int),
}


def _get_env_overrides(environ) -> dict:
    """Return a dict of settings for every env var that is set.
    These always win over persisted settings."""
    overrides = {}
    for env_key, (setting_key, parse) in _ENV_MAPPING.items():
        raw = environ.get(env_key)
        if raw is not None:
            overrides[setting_key] = parse(raw)
    return overrides


def _load_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError) as e:
        raise ValueError(f"Unreadable settings file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object")
    if "default_expiry" in data:
        data["default_expiry"] = utils.parse_minutes(data["default_expiry"])
    return data


def load_settings(environ=None) -> SecretSettings:
    """Load settings from file, then apply env-var overrides.

    Missing ``app_key`` is replaced by a random one: links then stop working
    on restart, which is only acceptable in development.
    """
    environ = os.environ if environ is None else environ

    values = {}
    settings_file = environ.get("SECRET_SETTINGS_FILE")
    if settings_file:
        values.update(_load_file(Path(settings_file)))
    values.update(_get_env_overrides(environ))

    data_dir = Path(values.get("data_dir") or DEFAULT_DATA_DIR)
    values["data_dir"] = data_dir
    if not values.get("disks"):
        values["disks"] = {
            "media": str(data_dir / "media"),
            "local": str(data_dir / "app"),
        }

    if not values.get("app_key"):
        logger.warning("APP_KEY is not set, using a random key; issued links will not survive a restart")
        values["app_key"] = "base64:" + base64.b64encode(secrets.token_bytes(32)).decode()

    return SecretSettings(**values)
