from __future__ import annotations

import unittest

from receptbok.config import Settings
from receptbok.db import normalize_database_url
from receptbok.startup import validate_settings


class ValidateSettingsTestCase(unittest.TestCase):
    def test_dev_tolerates_missing_secrets(self):
        validate_settings(Settings(environment="dev", openai_api_key=None, database_url=None))

    def test_prod_requires_secrets(self):
        settings = Settings(environment="prod", openai_api_key=None, database_url=None, clerk_issuer=None)
        with self.assertRaises(RuntimeError) as ctx:
            validate_settings(settings)
        self.assertIn("OPENAI_API_KEY", str(ctx.exception))
        self.assertIn("CLERK_ISSUER", str(ctx.exception))

    def test_prod_refuses_disabled_auth(self):
        settings = Settings(environment="prod", auth_disable_verification=True)
        with self.assertRaises(RuntimeError):
            validate_settings(settings)

    def test_meal_plan_model_must_be_allowed(self):
        settings = Settings(openai_meal_plan_model="gpt-x", openai_allowed_models="gpt-5-mini,gpt-5")
        with self.assertRaises(RuntimeError):
            validate_settings(settings)


class NormalizeDatabaseUrlTestCase(unittest.TestCase):
    def test_postgres_urls_use_asyncpg(self):
        url = normalize_database_url("postgres://u:p@db.example.com/receptbok?sslmode=require")
        self.assertEqual(url, "postgresql+asyncpg://u:p@db.example.com/receptbok?ssl=require")

    def test_internal_hosts_disable_ssl(self):
        url = normalize_database_url("postgresql://u:p@db.internal:5432/receptbok")
        self.assertTrue(url.endswith("?ssl=disable"))

    def test_sqlite_uses_aiosqlite(self):
        self.assertEqual(normalize_database_url("sqlite:///./dev.db"), "sqlite+aiosqlite:///./dev.db")


if __name__ == "__main__":
    unittest.main()
