"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from falcon_state.api.app import create_app
from falcon_state.models.operation import PackageState
from falcon_state.models.settings import SensorSettings


@pytest.fixture
def client():
    """Create a test client with explicit settings."""
    app = create_app(settings=SensorSettings(os_family="Debian"))
    return TestClient(app)


class TestSettingsEndpoint:
    def test_get_settings(self, client):
        response = client.get("/settings")
        assert response.status_code == 200
        data = response.json()
        assert data["os_family"] == "Debian"
        assert data["falconctl_path"] == "/opt/CrowdStrike/falconctl"


class TestPlanEndpoints:
    def test_fresh_registration(self, client):
        response = client.post("/plan", json={
            "desired": {"cid": "ABCDE-12", "tags": ["x", "y"]},
            "facts": None,
        })
        assert response.status_code == 200
        data = response.json()
        assert data["package_state"] == "present"
        assert [op["kind"] for op in data["operations"]] == ["register", "service-enable"]
        assert data["operations"][0]["arguments"]["cid"] == "ABCDE-12"

    def test_missing_cid(self, client):
        response = client.post("/plan", json={"desired": {"tags": ["x"]}})
        assert response.status_code == 422
        assert "cid" in response.json()["detail"]

    def test_absent_purges_on_debian(self, client):
        response = client.post("/plan", json={"desired": {"ensure": "absent"}})
        assert response.status_code == 200
        assert response.json() == {"package_state": "purged", "operations": []}

    def test_invalid_port(self, client):
        response = client.post("/plan", json={
            "desired": {"proxy_host": "p.example.com", "proxy_port": 70000},
        })
        assert response.status_code == 422

    def test_malformed_facts(self, client):
        response = client.post("/plan", json={
            "desired": {"cid": "ABCDE-12"},
            "facts": {"agent_id": "abc", "proxy_disable": "sometimes"},
        })
        assert response.status_code == 422

    def test_render_proxy_change(self, client):
        response = client.post("/plan/render", json={
            "desired": {"proxy_host": "new.example.com", "proxy_port": 3128},
            "facts": {
                "agent_id": "abc",
                "proxy_disable": False,
                "proxy_host": "old.example.com",
                "proxy_port": 3128,
            },
        })
        assert response.status_code == 200
        operations = response.json()["operations"]
        assert [op["name"] for op in operations] == [
            "update-proxy-host", "update-proxy-port", "service-enable",
        ]
        assert operations[0]["command"] == operations[1]["command"]
        assert "--aph=new.example.com" in operations[0]["command"]

    def test_render_in_sync(self, client):
        response = client.post("/plan/render", json={
            "desired": {"tags": ["b", "a"]},
            "facts": {"agent_id": "abc", "tags": ["a", "b"]},
        })
        assert response.status_code == 200
        operations = response.json()["operations"]
        assert [op["name"] for op in operations] == ["service-enable"]


class RecordingRunner:
    """Stands in for the host shell: guards report drift, commands succeed."""

    def __init__(self, failing=()):
        self.calls = []
        self.failing = failing

    def __call__(self, command: str) -> int:
        self.calls.append(command)
        if any(marker in command for marker in self.failing):
            return 1
        return 1 if " -g " in command else 0


class TestApplyEndpoint:
    def setup_method(self):
        self.runner = RecordingRunner()
        self.packages = []
        app = create_app(
            settings=SensorSettings(os_family="RedHat"),
            runner=self.runner,
            package_handler=self.packages.append,
        )
        self.client = TestClient(app)

    def test_apply_registration(self):
        response = self.client.post("/apply", json={
            "desired": {"cid": "ABCDE-12", "tags": ["x", "y"]},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["package_state"] == "present"
        assert [o["name"] for o in data["applied"]] == ["register", "service-enable"]
        assert self.packages == [PackageState.PRESENT]
        assert any("--cid=ABCDE-12" in c for c in self.runner.calls)

    def test_apply_reports_failures(self):
        self.runner.failing = ("--tags=",)
        response = self.client.post("/apply", json={
            "desired": {"tags": ["new"]},
            "facts": {"agent_id": "abc", "tags": ["old"]},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert [o["name"] for o in data["failed"]] == ["update-tags"]

    def test_apply_missing_cid_runs_nothing(self):
        response = self.client.post("/apply", json={"desired": {}})
        assert response.status_code == 422
        assert self.runner.calls == []
        assert self.packages == []

    def test_apply_absent(self):
        response = self.client.post("/apply", json={"desired": {"ensure": "absent"}})
        assert response.status_code == 200
        assert response.json()["applied"] == []
        assert self.packages == [PackageState.ABSENT]
