import json
import unittest

from wingman import create_app
from wingman.extensions import db
from wingman.models import Provider
from wingman.services.ai_connection import get_connector
from wingman.services.provider_store import ProviderConfigStore, parse_base_urls
from wingman.services.seed import DEFAULT_PROVIDERS, seed_providers


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False


class ParseBaseUrlsTests(unittest.TestCase):
    def test_json_array_string(self) -> None:
        self.assertEqual(
            parse_base_urls('["https://a.example/v1", "https://b.example"]'),
            ("https://a.example/v1", "https://b.example"),
        )

    def test_list_value(self) -> None:
        self.assertEqual(parse_base_urls(["https://a.example", " https://b.example "]), ("https://a.example", "https://b.example"))

    def test_comma_joined_string(self) -> None:
        self.assertEqual(
            parse_base_urls("https://a.example/v1, https://b.example/v1,"),
            ("https://a.example/v1", "https://b.example/v1"),
        )

    def test_single_plain_url(self) -> None:
        self.assertEqual(parse_base_urls("https://a.example/v1"), ("https://a.example/v1",))

    def test_bytes_value(self) -> None:
        self.assertEqual(parse_base_urls(b'["https://a.example"]'), ("https://a.example",))

    def test_empty_values(self) -> None:
        self.assertEqual(parse_base_urls(None), ())
        self.assertEqual(parse_base_urls(""), ())
        self.assertEqual(parse_base_urls("[]"), ())


class ProviderConfigStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.app = create_app(TestConfig)
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()
        self.store = ProviderConfigStore()

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def test_missing_provider_returns_none(self) -> None:
        self.assertIsNone(self.store.get_provider_config("nope"))
        self.assertIsNone(self.store.get_default_provider_id())
        self.assertEqual(self.store.list_providers(), [])

    def test_seeded_providers_are_loaded(self) -> None:
        seed_providers()

        config = self.store.get_provider_config("qwen-plus")

        self.assertEqual(config.identifier, "qwen-plus")
        self.assertEqual(config.base_urls, tuple(DEFAULT_PROVIDERS[0]["base_urls"]))
        self.assertEqual(config.default_model, "qwen-plus")
        self.assertTrue(config.requires_auth)
        self.assertEqual(config.auth_header, "Authorization")
        self.assertEqual(self.store.get_default_provider_id(), "qwen-plus")
        self.assertEqual(
            self.store.list_providers(),
            [{"id": "qwen-plus", "name": "Qwen Plus"}, {"id": "gpt-5.2-all", "name": "GPT-5.2 All"}],
        )

    def test_seeding_is_idempotent(self) -> None:
        self.assertEqual(seed_providers(), 2)
        self.assertEqual(seed_providers(), 0)
        self.assertEqual(Provider.query.count(), 2)

    def test_legacy_comma_joined_row(self) -> None:
        db.session.add(
            Provider(
                id="legacy",
                name="Legacy",
                base_urls="https://a.example/v1,https://b.example/v1",
                default_model="m",
                requires_auth=False,
                auth_header=None,
            )
        )
        db.session.commit()

        config = self.store.get_provider_config("legacy")

        self.assertEqual(config.base_urls, ("https://a.example/v1", "https://b.example/v1"))
        self.assertFalse(config.requires_auth)
        self.assertIsNone(config.auth_header)

    def test_row_without_urls_is_not_configured(self) -> None:
        db.session.add(Provider(id="empty", name="Empty", base_urls=json.dumps([]), default_model="m"))
        db.session.commit()

        self.assertIsNone(self.store.get_provider_config("empty"))
        result = get_connector().connect("empty", "k", [])
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Provider empty is not configured")


if __name__ == "__main__":
    unittest.main()
