"""
Unit tests for the plugin admin API.

The registry and cron manager are replaced with mocks through FastAPI
dependency overrides; the app lifespan is never entered.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from raidledger.api.dependencies import get_cron_manager, get_plugin_registry
from raidledger.auth.jwt_manager import JWTManager
from raidledger.core.exceptions import (
    CronJobNotFoundError,
    PluginAlreadyInstalledError,
    PluginManifestNotFoundError,
    PluginNotInstalledError,
    PluginStillActiveError,
)
from raidledger.main import create_app
from raidledger.plugins.cron_manager import CronManager
from raidledger.plugins.registry import PluginRegistryService
from raidledger.schemas.plugin import CronJobSummary, IntegrationSummary, PluginStatus, PluginSummary

ADMIN_HEADERS = {"Authorization": "ApiKey test-api-key"}


@pytest.fixture
def registry():
    return MagicMock(spec=PluginRegistryService)


@pytest.fixture
def cron_manager():
    return MagicMock(spec=CronManager)


@pytest.fixture
def client(registry, cron_manager):
    app = create_app()
    app.dependency_overrides[get_plugin_registry] = lambda: registry
    app.dependency_overrides[get_cron_manager] = lambda: cron_manager
    return TestClient(app)


def _bearer(role):
    token = JWTManager().create_access_token({"user_id": "user-1", "email": "raider@example.com", "role": role})
    return {"Authorization": f"Bearer {token}"}


class TestAuthentication:
    def test_missing_credentials(self, client, registry):
        response = client.get("/admin/plugins")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "HTTP_401"
        registry.list_plugins.assert_not_called()

    def test_wrong_api_key(self, client):
        response = client.post("/admin/plugins/blizzard/install", headers={"Authorization": "ApiKey nope"})
        assert response.status_code == 401

    def test_non_admin_token_forbidden(self, client, registry):
        response = client.post("/admin/plugins/blizzard/install", headers=_bearer("member"))
        assert response.status_code == 403
        registry.install.assert_not_called()

    def test_admin_token_allowed(self, client, registry):
        response = client.post("/admin/plugins/blizzard/install", headers=_bearer("admin"))
        assert response.status_code == 200
        registry.install.assert_awaited_once_with("blizzard")


class TestSlugValidation:
    @pytest.mark.parametrize("slug", ["Blizzard", "bliz_zard", "-blizzard", "blizzard-", "b", "a" * 101])
    @pytest.mark.parametrize("action", ["install", "uninstall", "activate", "deactivate"])
    def test_invalid_slug_rejected_before_service(self, client, registry, slug, action):
        response = client.post(f"/admin/plugins/{slug}/{action}", headers=ADMIN_HEADERS)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PLUGIN_SLUG"
        getattr(registry, action).assert_not_called()


class TestLifecycleEndpoints:
    def test_install(self, client, registry):
        response = client.post("/admin/plugins/blizzard/install", headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": 'Plugin "blizzard" installed and activated'}

    def test_uninstall(self, client, registry):
        response = client.post("/admin/plugins/blizzard/uninstall", headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["success"] is True
        registry.uninstall.assert_awaited_once_with("blizzard")

    def test_activate_and_noop(self, client, registry):
        registry.activate.return_value = True
        assert client.post("/admin/plugins/blizzard/activate", headers=ADMIN_HEADERS).json()["message"] == (
            'Plugin "blizzard" activated'
        )
        registry.activate.return_value = False
        response = client.post("/admin/plugins/blizzard/activate", headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["message"] == 'Plugin "blizzard" is already active'

    def test_deactivate(self, client, registry):
        registry.deactivate.return_value = True
        response = client.post("/admin/plugins/blizzard/deactivate", headers=ADMIN_HEADERS)
        assert response.json() == {"success": True, "message": 'Plugin "blizzard" deactivated'}

    @pytest.mark.parametrize(
        ("action", "error", "status_code", "code"),
        [
            ("install", PluginManifestNotFoundError("blizzard"), 404, "PLUGIN_MANIFEST_NOT_FOUND"),
            ("install", PluginAlreadyInstalledError("blizzard"), 400, "PLUGIN_ALREADY_INSTALLED"),
            ("uninstall", PluginStillActiveError("blizzard"), 400, "PLUGIN_STILL_ACTIVE"),
            ("activate", PluginNotInstalledError("blizzard"), 404, "PLUGIN_NOT_INSTALLED"),
        ],
    )
    def test_errors_are_mapped(self, client, registry, action, error, status_code, code):
        getattr(registry, action).side_effect = error

        response = client.post(f"/admin/plugins/blizzard/{action}", headers=ADMIN_HEADERS)

        assert response.status_code == status_code
        body = response.json()
        assert body["error"]["code"] == code
        assert body["error"]["details"]["slug"] == "blizzard"


class TestListPlugins:
    def test_list_wraps_summaries_in_data(self, client, registry):
        installed_at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
        registry.list_plugins.return_value = [
            PluginSummary(
                slug="blizzard",
                name="Blizzard",
                version="1.0.0",
                game_scopes=["world-of-warcraft"],
                integrations=[IntegrationSummary(key="battlenet", name="Battle.net", configured=True)],
                status=PluginStatus.ACTIVE,
                installed_at=installed_at,
            ),
            PluginSummary(slug="steam", name="Steam", version="0.3.0", status=PluginStatus.NOT_INSTALLED),
        ]

        response = client.get("/admin/plugins", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        data = response.json()["data"]
        assert [p["status"] for p in data] == ["active", "not_installed"]
        assert data[0]["installed_at"].startswith("2026-01-02T03:04:05")
        assert data[0]["integrations"][0]["configured"] is True
        assert data[1]["installed_at"] is None


class TestIntegrationCredentials:
    def test_update(self, client, registry):
        response = client.put(
            "/admin/plugins/blizzard/integrations/battlenet",
            headers=ADMIN_HEADERS,
            json={"values": {"blizzard_client_id": "id"}},
        )
        assert response.status_code == 200
        registry.update_integration_credentials.assert_awaited_once_with(
            "blizzard", "battlenet", {"blizzard_client_id": "id"}
        )


class TestCronJobEndpoints:
    def test_list(self, client, cron_manager):
        cron_manager.list_plugin_jobs.return_value = [
            CronJobSummary(name="blizzard:sync", plugin_slug="blizzard", cron_expression="*/5 * * * *")
        ]
        response = client.get("/admin/plugins/cron-jobs", headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["data"][0]["name"] == "blizzard:sync"

    def test_run(self, client, cron_manager):
        response = client.post("/admin/plugins/cron-jobs/blizzard:sync/run", headers=ADMIN_HEADERS)
        assert response.status_code == 200
        cron_manager.trigger_job.assert_awaited_once_with("blizzard:sync")

    def test_run_unknown(self, client, cron_manager):
        cron_manager.trigger_job.side_effect = CronJobNotFoundError("blizzard:nope")
        response = client.post("/admin/plugins/cron-jobs/blizzard:nope/run", headers=ADMIN_HEADERS)
        assert response.status_code == 404
