from __future__ import annotations

import logging
import os
import unittest
from types import SimpleNamespace
from unittest.mock import patch

from cryptography.fernet import Fernet
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from goalwatch import settings as settings_module
from goalwatch.db import Base
from goalwatch.log_buffer import BufferHandler
from goalwatch.settings import (
    decrypt_api_key,
    encrypt_api_key,
    get_or_create_settings,
    resolve_fixtures_api_key,
    snapshot_settings,
)


class ApiKeyEncryptionTests(unittest.TestCase):
    def setUp(self) -> None:
        env = patch.dict(os.environ, {"APP_SECRET_KEY": Fernet.generate_key().decode("utf-8")})
        env.start()
        self.addCleanup(env.stop)
        fernet = patch.object(settings_module, "_FERNET", None)
        fernet.start()
        self.addCleanup(fernet.stop)

    def test_round_trip(self) -> None:
        encrypted = encrypt_api_key("abc123")

        self.assertNotEqual("abc123", encrypted)
        self.assertEqual("abc123", decrypt_api_key(encrypted))

    def test_empty_key_is_not_stored(self) -> None:
        self.assertIsNone(encrypt_api_key(""))
        self.assertIsNone(decrypt_api_key(None))

    def test_garbage_ciphertext_decrypts_to_none(self) -> None:
        self.assertIsNone(decrypt_api_key("not-a-token"))

    def test_blank_key_is_not_stored(self) -> None:
        self.assertIsNone(encrypt_api_key("   "))
        self.assertEqual("abc123", decrypt_api_key(encrypt_api_key("  abc123 ")))

    def test_key_from_another_secret_falls_back_to_environment(self) -> None:
        foreign = Fernet(Fernet.generate_key()).encrypt(b"stored").decode("utf-8")
        settings = SimpleNamespace(fixtures_api_key_enc=foreign)

        with patch.dict(os.environ, {"FOOTBALL_API_KEY": "env"}):
            self.assertEqual("env", resolve_fixtures_api_key(settings))

    def test_stored_key_wins_over_environment(self) -> None:
        settings = SimpleNamespace(fixtures_api_key_enc=encrypt_api_key("stored"))

        with patch.dict(os.environ, {"FOOTBALL_API_KEY": "env"}):
            self.assertEqual("stored", resolve_fixtures_api_key(settings))

    def test_environment_key_is_fallback(self) -> None:
        settings = SimpleNamespace(fixtures_api_key_enc=None)

        with patch.dict(os.environ, {"FOOTBALL_API_KEY": "  env  "}):
            self.assertEqual("env", resolve_fixtures_api_key(settings))
        with patch.dict(os.environ, {"FOOTBALL_API_KEY": ""}):
            self.assertIsNone(resolve_fixtures_api_key(settings))


class SettingsRowTests(unittest.TestCase):
    def test_defaults_are_created_once(self) -> None:
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)

        with session_factory() as db:
            first = snapshot_settings(get_or_create_settings(db))
        with session_factory() as db:
            second = snapshot_settings(get_or_create_settings(db))

        self.assertEqual(first, second)
        self.assertTrue(first.resolver_enabled)
        self.assertEqual(30, first.resolver_interval_seconds)
        self.assertEqual(4, first.resolver_concurrency)
        self.assertEqual(2, first.retention_days)


class BufferHandlerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.handler = BufferHandler(maxlen=3)
        self.logger = logging.getLogger("goalwatch.tests.buffer")
        self.logger.propagate = False
        self.logger.setLevel(logging.DEBUG)
        self.logger.addHandler(self.handler)
        self.addCleanup(self.logger.removeHandler, self.handler)

    def test_newest_first_and_bounded(self) -> None:
        for index in range(5):
            self.logger.info("tick %d", index)

        messages = [entry["message"] for entry in self.handler.entries()]

        self.assertEqual(["tick 4", "tick 3", "tick 2"], messages)

    def test_min_level_and_limit(self) -> None:
        self.logger.debug("pending")
        self.logger.warning("skipped")
        self.logger.info("won")

        self.assertEqual(["skipped"], [e["message"] for e in self.handler.entries(min_level=logging.WARNING)])
        self.assertEqual(["won"], [e["message"] for e in self.handler.entries(limit=1)])
        self.assertEqual([], self.handler.entries(limit=0))


if __name__ == "__main__":
    unittest.main()
