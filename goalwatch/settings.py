from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from cryptography.fernet import Fernet, InvalidToken

from goalwatch.models import AppSettings

logger = logging.getLogger(__name__)
_FERNET: Fernet | None = None


@dataclass(frozen=True)
class SettingsSnapshot:
    id: int
    fixtures_api_key_enc: str | None
    resolver_enabled: bool
    resolver_concurrency: int
    resolver_interval_seconds: int
    fetch_timeout_seconds: float
    retention_days: int


def _default_settings() -> AppSettings:
    return AppSettings(
        id=1,
        fixtures_api_key_enc=None,
        resolver_enabled=True,
        resolver_concurrency=4,
        resolver_interval_seconds=30,
        fetch_timeout_seconds=5.0,
        retention_days=2,
        updated_at_utc=datetime.now(timezone.utc),
    )


def get_or_create_settings(db) -> AppSettings:
    settings = db.query(AppSettings).filter(AppSettings.id == 1).one_or_none()
    if settings:
        return settings
    settings = _default_settings()
    db.add(settings)
    db.commit()
    db.refresh(settings)
    return settings


def snapshot_settings(settings: AppSettings) -> SettingsSnapshot:
    return SettingsSnapshot(
        id=settings.id,
        fixtures_api_key_enc=settings.fixtures_api_key_enc,
        resolver_enabled=settings.resolver_enabled,
        resolver_concurrency=settings.resolver_concurrency,
        resolver_interval_seconds=settings.resolver_interval_seconds,
        fetch_timeout_seconds=settings.fetch_timeout_seconds,
        retention_days=settings.retention_days,
    )


def load_settings_snapshot() -> SettingsSnapshot:
    from goalwatch.db import SessionLocal

    with SessionLocal() as db:
        return snapshot_settings(get_or_create_settings(db))


def get_fernet() -> Fernet:
    """Cipher for the stored fixtures API key, keyed by APP_SECRET_KEY."""
    global _FERNET
    if _FERNET is not None:
        return _FERNET
    secret = (os.getenv("APP_SECRET_KEY") or "").strip()
    if not secret:
        secret = Fernet.generate_key().decode("utf-8")
        logger.warning(
            "APP_SECRET_KEY is not set; using a throwaway key for this process (%s). "
            "A fixtures API key saved now cannot be read after a restart unless "
            "APP_SECRET_KEY is set to that value.",
            secret,
        )
    _FERNET = Fernet(secret.encode("utf-8"))
    return _FERNET


def encrypt_api_key(api_key: str | None) -> str | None:
    """Encrypt a fixtures API key for the app_settings row. Blank keys are not stored."""
    api_key = (api_key or "").strip()
    if not api_key:
        return None
    return get_fernet().encrypt(api_key.encode("utf-8")).decode("utf-8")


def decrypt_api_key(encrypted: str | None) -> str | None:
    if not encrypted:
        return None
    try:
        return get_fernet().decrypt(encrypted.encode("utf-8")).decode("utf-8")
    except InvalidToken:
        # Stored under a different APP_SECRET_KEY; callers fall back to FOOTBALL_API_KEY.
        logger.error(
            "Stored fixtures API key cannot be decrypted with the current APP_SECRET_KEY; "
            "ignoring it."
        )
        return None


def resolve_fixtures_api_key(settings) -> str | None:
    """Stored key first, then the FOOTBALL_API_KEY environment variable."""
    stored = decrypt_api_key(settings.fixtures_api_key_enc)
    if stored:
        return stored
    return (os.getenv("FOOTBALL_API_KEY") or "").strip() or None
