"""Client configuration with XDG paths, atomic writes, and precedence resolution.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.idxauth/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Client config** -- a single :class:`~idxauth.models.ClientConfig` JSON
  file, read by :func:`load_client_config` and written by
  :func:`save_client_config`.
* **Precedence resolution** -- explicit overrides beat ``IDXAUTH_*``
  environment variables, which beat the JSON file.

All file writes go through :func:`atomic_write` (temp file in the same
directory, fsync, ``os.replace``) so a crash never leaves a truncated file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from idxauth.exceptions import ConfigError
from idxauth.models import ClientConfig

_APP_NAME = "idxauth"
_CONFIG_FILENAME = "config.json"
_ENV_PREFIX = "IDXAUTH_"

# Environment variable suffix -> ClientConfig field
_ENV_FIELDS = {
    "ISSUER": "issuer",
    "CLIENT_ID": "client_id",
    "CLIENT_SECRET": "client_secret",
    "REDIRECT_URI": "redirect_uri",
    "SCOPES": "scopes",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/idxauth/`` (default ``~/.config/idxauth/``).
    On macOS/Windows: ``~/.idxauth/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (persisted transactions), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/idxauth/`` (default ``~/.local/share/idxauth/``).
    On macOS/Windows: ``~/.idxauth/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write *data* to *path* atomically using temp file + rename.

    Args:
        path: Destination file. Parent directories are created as needed.
        data: Text to write (UTF-8).
        mode: Optional permission bits applied to the temp file before any
            content is written, e.g. ``0o600`` for files holding secrets.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Client config ---


def _client_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid client config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid client config at {path}: expected a JSON object")
    return data


def _read_env() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for suffix, field_name in _ENV_FIELDS.items():
        raw = os.environ.get(f"{_ENV_PREFIX}{suffix}")
        if not raw:
            continue
        values[field_name] = raw.split() if field_name == "scopes" else raw
    return values


def load_client_config(
    path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ClientConfig:
    """Resolve the effective :class:`~idxauth.models.ClientConfig`.

    Precedence (high to low):
        1. *overrides* (keys with ``None`` values are ignored)
        2. Environment variables (``IDXAUTH_ISSUER``, ``IDXAUTH_CLIENT_ID``,
           ``IDXAUTH_CLIENT_SECRET``, ``IDXAUTH_REDIRECT_URI``,
           ``IDXAUTH_SCOPES`` space separated)
        3. The JSON file at *path* (default ``<config dir>/config.json``)
        4. Model defaults

    Raises:
        ConfigError: If the file is not valid JSON, or required settings
            (issuer, client id, redirect URI) are missing or invalid.
    """
    merged = _read_config_file(path or _client_config_path())
    merged.update(_read_env())
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        return ClientConfig.model_validate(merged)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(f"Invalid client configuration: {problems}") from exc


def save_client_config(config: ClientConfig, path: Optional[Path] = None) -> Path:
    """Persist *config* atomically and return the path written.

    The file may contain a client secret, so it is created with ``0o600``.
    """
    target = path or _client_config_path()
    data = config.model_dump(mode="json", exclude_none=True)
    atomic_write(target, json.dumps(data, indent=2) + "\n", mode=0o600)
    return target
