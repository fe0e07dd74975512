"""User settings for markpad and the encrypted memory-service credential."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from cryptography.fernet import Fernet, InvalidToken

from ..utils.file_io import write_bytes, write_text
from .memory_client import DEFAULT_BASE_URL, DEFAULT_DOMAIN, MemoryConfig

__all__ = [
    "Settings",
    "SettingsStore",
    "SecretVault",
    "redact_secret",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".markpad"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_DEFAULT_STORAGE_PATH = _SETTINGS_DIR / "storage.json"
_SETTINGS_VERSION = 1
_API_KEY_FIELD = "memory_api_key_ciphertext"
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_NONE_VALUES = {"", "none", "off"}


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    memory_api_key: str = ""
    memory_domain: str = DEFAULT_DOMAIN
    memory_base_url: str = DEFAULT_BASE_URL
    request_timeout: float | None = None
    autosave_delay_ms: int = 1000
    history_max_entries: int | None = None
    storage_path: str = str(_DEFAULT_STORAGE_PATH)
    debug_logging: bool = False

    @property
    def autosave_delay(self) -> float:
        return max(0, self.autosave_delay_ms) / 1000.0

    def memory_config(self) -> MemoryConfig:
        return MemoryConfig(
            api_key=self.memory_api_key,
            domain=self.memory_domain,
            base_url=self.memory_base_url,
            timeout=self.request_timeout,
        )


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _parse_optional_int(value: str) -> int | None:
    if value.strip().lower() in _NONE_VALUES:
        return None
    parsed = int(value, 10)
    if parsed < 1:
        raise ValueError("must be a positive integer")
    return parsed


def _parse_optional_float(value: str) -> float | None:
    if value.strip().lower() in _NONE_VALUES:
        return None
    return float(value)


# environment variable -> (settings field, parser)
_ENV_OVERRIDES: Mapping[str, tuple[str, Callable[[str], Any]]] = {
    "MARKPAD_MEMORY_API_KEY": ("memory_api_key", str),
    "MARKPAD_MEMORY_DOMAIN": ("memory_domain", str),
    "MARKPAD_MEMORY_BASE_URL": ("memory_base_url", str),
    "MARKPAD_STORAGE_PATH": ("storage_path", str),
    "MARKPAD_DEBUG_LOGGING": ("debug_logging", _parse_bool),
    "MARKPAD_AUTOSAVE_DELAY_MS": ("autosave_delay_ms", int),
    "MARKPAD_HISTORY_MAX_ENTRIES": ("history_max_entries", _parse_optional_int),
    "MARKPAD_REQUEST_TIMEOUT": ("request_timeout", _parse_optional_float),
}


class SecretVault:
    """Encrypts the memory API key with a Fernet key kept next to the settings.

    Tokens are stored as ``fernet:<token>``. The key file is generated on
    first use.
    """

    strategy = "fernet"

    def __init__(self, *, key_path: Path | None = None) -> None:
        self._key_path = key_path or (_SETTINGS_DIR / "settings.key")
        self._fernet: Fernet | None = None

    @property
    def key_path(self) -> Path:
        return self._key_path

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        token = self._get_fernet().encrypt(secret.encode("utf-8"))
        return f"{self.strategy}:{token.decode('ascii')}"

    def decrypt(self, token: str | None) -> str:
        if not token:
            return ""
        prefix, _, payload = token.partition(":")
        if not payload or prefix != self.strategy:
            raise ValueError(f"Unknown secret token prefix {prefix!r}")
        try:
            return self._get_fernet().decrypt(payload.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError(f"Memory API key was not encrypted with {self._key_path}") from exc

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            self._fernet = Fernet(self._load_or_create_key())
        return self._fernet

    def _load_or_create_key(self) -> bytes:
        if self._key_path.exists():
            return self._key_path.read_bytes().strip()
        key = Fernet.generate_key()
        # mkstemp creates the file owner-only, and the replace keeps that mode
        write_bytes(self._key_path, key)
        LOGGER.info("Generated settings key at %s", self._key_path)
        return key


class SettingsStore:
    """Reads and writes :class:`Settings` as JSON, never storing the API key in clear."""

    def __init__(self, path: Path | None = None, *, vault: SecretVault | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH
        self._vault = vault or SecretVault(key_path=self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def vault(self) -> SecretVault:
        return self._vault

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load from disk, then apply ``overrides`` and finally ``MARKPAD_*`` variables."""

        payload = self._read_payload()
        api_key = self._decrypt_api_key(payload.pop(_API_KEY_FIELD, None))
        settings = _merge(Settings(), payload, source=str(self._path))
        if api_key:
            settings = replace(settings, memory_api_key=api_key)
        if overrides:
            settings = _merge(settings, overrides, source="caller")
        return _merge(settings, _environment_overrides(), source="environment")

    def save(self, settings: Settings) -> Path:
        data: Dict[str, Any] = asdict(settings)
        ciphertext = self._vault.encrypt(data.pop("memory_api_key", "") or "")
        if ciphertext:
            data[_API_KEY_FIELD] = ciphertext
        data["version"] = _SETTINGS_VERSION
        write_text(self._path, json.dumps(data, indent=2, sort_keys=True))
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _decrypt_api_key(self, token: Any) -> str:
        if not isinstance(token, str):
            return ""
        try:
            return self._vault.decrypt(token)
        except ValueError as exc:
            LOGGER.warning("Ignoring stored memory API key: %s", exc)
            return ""

    def _read_payload(self) -> Dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        return dict(data) if isinstance(data, Mapping) else {}


def _merge(settings: Settings, values: Mapping[str, Any], *, source: str) -> Settings:
    allowed = {field.name for field in fields(Settings)}
    updates = {key: value for key, value in values.items() if key in allowed}
    if not updates:
        return settings
    LOGGER.debug("Applying settings from %s: %s", source, sorted(updates))
    return replace(settings, **updates)


def _environment_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_name, (field_name, parse) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None:
            continue
        try:
            overrides[field_name] = parse(raw)
        except ValueError:
            LOGGER.warning("Ignoring %s=%r: not a valid value for %s", env_name, raw, field_name)
    return overrides


def redact_secret(value: str) -> str:
    """Mask a credential for display, keeping the last four characters of long keys."""

    stripped = (value or "").strip()
    if len(stripped) <= 8:
        return "*" * len(stripped)
    return f"{'*' * (len(stripped) - 4)}{stripped[-4:]}"
