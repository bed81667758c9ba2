import unittest
from unittest.mock import MagicMock

from wingman import create_app
from wingman.connectors import EndpointProbeResult, ProviderConnector, TestConnectionResult
from wingman.extensions import db
from wingman.services.ai_connection import get_connector, init_connector
from wingman.services.provider_store import ProviderConfigStore
from wingman.services.seed import seed_providers


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False


class ProvidersApiTests(unittest.TestCase):
    def setUp(self) -> None:
        self.app = create_app(TestConfig)
        self.ctx = self.app.app_context()
        self.ctx.push()
        db.create_all()
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def test_health_endpoint(self) -> None:
        response = self.client.get("/health/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {"status": "healthy", "service": "wingman"})

    def test_unknown_route_returns_json_404(self) -> None:
        response = self.client.get("/api/does-not-exist")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {"success": False, "error": "Not Found"})

    def test_app_wires_store_backed_connector(self) -> None:
        connector = get_connector()

        self.assertIsInstance(connector, ProviderConnector)
        self.assertIsInstance(connector.store, ProviderConfigStore)

    def test_list_providers_from_seeded_store(self) -> None:
        seed_providers()

        response = self.client.get("/api/providers")

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertTrue(payload["success"])
        self.assertEqual([p["id"] for p in payload["providers"]], ["qwen-plus", "gpt-5.2-all"])
        self.assertEqual(payload["default_provider"], "qwen-plus")

    def test_list_providers_with_empty_store_uses_fallback_default(self) -> None:
        payload = self.client.get("/api/providers").get_json()

        self.assertEqual(payload["providers"], [])
        self.assertEqual(payload["default_provider"], "qwen-plus")

    def test_connection_test_requires_provider_and_key(self) -> None:
        response = self.client.post("/api/test-ai-connection", json={"provider": "qwen-plus"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "Provider and API key are required")

    def test_connection_test_reports_pass(self) -> None:
        connector = MagicMock(spec=ProviderConnector)
        connector.test_connection.return_value = TestConnectionResult(
            result="PASS",
            response="API test successful",
            used_url="https://openaiss.com/v1/chat/completions",
            attempts=2,
        )
        init_connector(self.app, connector)

        response = self.client.post(
            "/api/test-ai-connection", json={"provider": "gpt-5.2-all", "api_key": "sk-abc"}
        )

        payload = response.get_json()
        self.assertEqual(response.status_code, 200)
        self.assertTrue(payload["success"])
        self.assertEqual(payload["result"], "PASS")
        self.assertEqual(payload["used_url"], "https://openaiss.com/v1/chat/completions")
        self.assertEqual(payload["attempts"], 2)
        connector.test_connection.assert_called_once_with("gpt-5.2-all", "sk-abc")

    def test_connection_test_for_unknown_provider_fails_without_network(self) -> None:
        probe = MagicMock(return_value=EndpointProbeResult(url="unused", reachable=False))
        session_factory = MagicMock()
        init_connector(self.app, ProviderConnector(ProviderConfigStore(), probe=probe, session_factory=session_factory))

        response = self.client.post("/api/test-ai-connection", json={"provider": "ghost", "api_key": "sk-abc"})

        payload = response.get_json()
        self.assertFalse(payload["success"])
        self.assertEqual(payload["result"], "FAIL")
        self.assertEqual(payload["error"], "Provider ghost is not configured")
        self.assertEqual(payload["attempts"], 0)
        probe.assert_not_called()
        session_factory.assert_not_called()


if __name__ == "__main__":
    unittest.main()
