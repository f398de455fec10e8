"""Tests for the HTTP functions."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from membersync import config
from membersync.config import ConfigError, config_from_mapping
from membersync.directory_client import ChangeResult, ChangeStatus
from membersync.models import Action, ApplySummary, ItemOutcome, PlannedAction
from membersync.sync import SyncFailedError
from membersync.web.dependencies import SignupClients, get_signup_clients, get_sync_config

CFG = config_from_mapping({
    "googleGroupEmail": "members@utoc.ca",
    "adminEmail": "admin@utoc.ca",
    "databaseSpreadsheetId": "sheet-1",
    "directoryApiServiceAccountEmail": "d",
    "directoryApiServiceAccountKey": "k",
    "googleSheetsServiceAccountEmail": "s",
    "googleSheetsServiceAccountKey": "k",
    "welcomeEmailTemplateId": "d-welcome",
}, "test")

TOKEN = "trigger-secret"
AUTH = {"Authorization": f"Bearer {TOKEN}"}

FORM = {
    "orderID": "ORDER-1",
    "membership_type": "regular",
    "email": "ann@x.com",
    "firstName": "Ann",
    "lastName": "Lee",
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def clients():
    paypal = MagicMock()
    paypal.get_order.return_value = {"purchase_units": [{"amount": {"value": "30.00"}}]}
    directory = MagicMock()
    directory.add_member.return_value = ChangeResult(ChangeStatus.DONE)
    roster = MagicMock()
    roster.append_row.return_value = 2
    return SignupClients(
        paypal=paypal, roster=roster, directory=directory, notifier=MagicMock(),
    )


@pytest.fixture()
def app(clients, monkeypatch):
    monkeypatch.setattr(config, "TRIGGER_AUTH_ENABLED", True)
    monkeypatch.setattr(config, "TRIGGER_TOKEN", TOKEN)
    from membersync.web.app import create_app
    app = create_app()
    app.dependency_overrides[get_sync_config] = lambda: CFG
    app.dependency_overrides[get_signup_clients] = lambda: clients
    return app


@pytest.fixture()
def client(app):
    return TestClient(app, raise_server_exceptions=False, headers=AUTH)


def _summary(added=0, removed=0, failed=0) -> ApplySummary:
    summary = ApplySummary()
    for i in range(added):
        summary.record(ItemOutcome(PlannedAction(f"a{i}", Action.ADD), success=True))
    for i in range(removed):
        summary.record(ItemOutcome(PlannedAction(f"r{i}", Action.REMOVE), success=True))
    for i in range(failed):
        summary.record(ItemOutcome(PlannedAction(f"f{i}", Action.REMOVE), success=False))
    return summary


# ===========================================================================
# TestHealth
# ===========================================================================

class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


# ===========================================================================
# TestSyncRoutes
# ===========================================================================

class TestSyncRoutes:

    def test_sync_ok(self, client):
        with patch(
            "membersync.web.routes.sync_routes.synchronize_mailing_list",
            return_value=_summary(added=2, removed=1),
        ) as job:
            resp = client.post("/sync")
        assert resp.status_code == 200
        assert resp.json() == {
            "status": "ok", "num_attempted": 3, "num_added": 2, "num_removed": 1, "num_failed": 0,
        }
        job.assert_called_once_with(CFG, dry_run=False)

    def test_sync_dry_run(self, client):
        with patch(
            "membersync.web.routes.sync_routes.synchronize_mailing_list",
            return_value=_summary(),
        ) as job:
            client.post("/sync?dry_run=true")
        job.assert_called_once_with(CFG, dry_run=True)

    def test_sync_failed(self, client):
        with patch(
            "membersync.web.routes.sync_routes.synchronize_mailing_list",
            side_effect=SyncFailedError(_summary(added=1, failed=2)),
        ):
            resp = client.post("/sync")
        assert resp.status_code == 500
        assert resp.json()["status"] == "failed"
        assert resp.json()["num_failed"] == 2

    def test_remove_expired(self, client):
        with patch(
            "membersync.web.routes.sync_routes.remove_expired_members",
            return_value=_summary(removed=4),
        ):
            resp = client.post("/remove-expired")
        assert resp.status_code == 200
        assert resp.json()["num_removed"] == 4

    def test_config_error(self, app):
        def broken():
            raise ConfigError("Missing required configuration: adminEmail")
        app.dependency_overrides[get_sync_config] = broken
        resp = TestClient(app, raise_server_exceptions=False, headers=AUTH).post("/sync")
        assert resp.status_code == 500
        assert "adminEmail" in resp.json()["detail"]


# ===========================================================================
# TestMembershipRoute
# ===========================================================================

class TestMembershipRoute:

    def test_form_signup_redirects(self, client, clients):
        resp = client.post("/membership", data=FORM, follow_redirects=False)
        assert resp.status_code == 303
        assert resp.headers["location"] == config.SUCCESS_URL
        clients.paypal.capture_order.assert_called_once_with("ORDER-1")
        clients.roster.append_row.assert_called_once()
        clients.notifier.send.assert_called_once()

    def test_json_signup(self, client, clients):
        resp = client.post("/membership", json=FORM, follow_redirects=False)
        assert resp.status_code == 303
        clients.directory.add_member.assert_called_once_with("ann@x.com")

    def test_validation_error(self, client, clients):
        resp = client.post("/membership", data={**FORM, "email": "nope"}, follow_redirects=False)
        assert resp.status_code == 400
        assert resp.text.startswith(config.CONTACT_MESSAGE)
        assert "email" in resp.text
        clients.paypal.get_order.assert_not_called()

    def test_payment_mismatch(self, client, clients):
        clients.paypal.get_order.return_value = {"purchase_units": [{"amount": {"value": "20.00"}}]}
        resp = client.post("/membership", data=FORM, follow_redirects=False)
        assert resp.status_code == 400
        assert "doesn't match" in resp.text
        clients.roster.append_row.assert_not_called()

    def test_unexpected_error(self, client, clients):
        clients.roster.append_row.side_effect = RuntimeError("sheets down")
        resp = client.post("/membership", data=FORM, follow_redirects=False)
        assert resp.status_code == 500
        assert "sheets down" in resp.text

    def test_malformed_json(self, client, clients):
        resp = client.post(
            "/membership",
            content=b"{not json",
            headers={"content-type": "application/json"},
            follow_redirects=False,
        )
        assert resp.status_code == 400
        clients.paypal.get_order.assert_not_called()


# ===========================================================================
# TestTriggerAuth
# ===========================================================================

class TestTriggerAuth:

    @pytest.mark.parametrize("path", ["/sync", "/remove-expired"])
    def test_missing_token_rejected(self, app, path):
        with patch("membersync.web.routes.sync_routes.synchronize_mailing_list") as sync_job, \
             patch("membersync.web.routes.sync_routes.remove_expired_members") as expire_job:
            resp = TestClient(app, raise_server_exceptions=False).post(path)
        assert resp.status_code == 401
        sync_job.assert_not_called()
        expire_job.assert_not_called()

    def test_wrong_token_rejected(self, app):
        anon = TestClient(app, raise_server_exceptions=False, headers={"Authorization": "Bearer nope"})
        with patch("membersync.web.routes.sync_routes.synchronize_mailing_list") as job:
            resp = anon.post("/sync")
        assert resp.status_code == 401
        job.assert_not_called()

    def test_unset_token_refuses(self, app, monkeypatch):
        monkeypatch.setattr(config, "TRIGGER_TOKEN", "")
        with patch("membersync.web.routes.sync_routes.synchronize_mailing_list") as job:
            resp = TestClient(app, raise_server_exceptions=False, headers=AUTH).post("/sync")
        assert resp.status_code == 503
        job.assert_not_called()

    def test_auth_disabled(self, app, monkeypatch):
        monkeypatch.setattr(config, "TRIGGER_AUTH_ENABLED", False)
        with patch(
            "membersync.web.routes.sync_routes.synchronize_mailing_list",
            return_value=_summary(),
        ):
            resp = TestClient(app, raise_server_exceptions=False).post("/sync")
        assert resp.status_code == 200

    def test_signup_needs_no_token(self, app):
        resp = TestClient(app, raise_server_exceptions=False).post(
            "/membership", data=FORM, follow_redirects=False,
        )
        assert resp.status_code == 303


# ===========================================================================
# TestSignupClientErrors
# ===========================================================================

class TestSignupClientErrors:

    def test_bad_credentials_render_friendly_error(self, app):
        del app.dependency_overrides[get_signup_clients]
        with patch(
            "membersync.auth.get_sheets_credentials",
            side_effect=ValueError("Could not deserialize key data"),
        ):
            resp = TestClient(app, raise_server_exceptions=False).post(
                "/membership", data=FORM, follow_redirects=False,
            )
        assert resp.status_code == 500
        assert resp.text.startswith(config.CONTACT_MESSAGE)
        assert "Could not deserialize key data" in resp.text

    def test_real_dependency_closes_clients(self, app):
        del app.dependency_overrides[get_signup_clients]
        built = SignupClients(
            paypal=MagicMock(), roster=MagicMock(), directory=MagicMock(), notifier=MagicMock(),
        )
        built.paypal.get_order.return_value = {"purchase_units": [{"amount": {"value": "30.00"}}]}
        built.directory.add_member.return_value = ChangeResult(ChangeStatus.DONE)
        built.roster.append_row.return_value = 2
        with patch("membersync.web.dependencies._build_signup_clients", return_value=built):
            resp = TestClient(app, raise_server_exceptions=False).post(
                "/membership", data=FORM, follow_redirects=False,
            )
        assert resp.status_code == 303
        built.paypal.close.assert_called_once()
        built.notifier.close.assert_called_once()
