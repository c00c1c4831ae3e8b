"""
Integration tests for the complete console flow.
"""

import json

import pytest

from ebill_console.app.console import Console
from ebill_console.app.session.guard import LOGIN_PATH
from shared.config import get_config
from shared.metrics import MetricsCollector
from shared.test_helpers import FakeEbillBackend


class TestConsoleFlow:
    """Staff and customer journeys against an in-process backend."""

    @pytest.fixture
    def backend(self):
        return FakeEbillBackend()

    @pytest.fixture
    def config(self, tmp_path):
        return get_config(backend_url="http://backend.test", session_file=tmp_path / "session.json")

    def open_console(self, config, backend):
        return Console(config=config, transport=backend.transport(), metrics=MetricsCollector("console-test"))

    @pytest.mark.asyncio
    async def test_session_survives_restart(self, config, backend):
        console = self.open_console(config, backend)
        await console.login("alice", "x")

        restarted = self.open_console(config, backend)

        assert restarted.session.get().username == "alice"
        assert restarted.navigator.navigate("/customers") == "/customers"

    @pytest.mark.asyncio
    async def test_rejected_credential_ends_session_everywhere(self, config, backend):
        console = self.open_console(config, backend)
        await console.login("alice", "x")
        console.navigator.navigate("/billing")
        view = console.list_view("billing")

        backend.revoke_tokens()
        await view.mount()

        assert view.state.error == "Token is not valid"
        assert console.session.get() is None
        assert not config.session_file.exists()
        assert console.navigator.current == LOGIN_PATH
        assert console.navigator.navigate("/customers") == LOGIN_PATH
        assert console.metrics.sample_value("session_invalidations_total", status_code="401") == 1.0

        backend.revoked = False
        await console.login("alice", "x")
        await view.refresh()
        assert view.state.error is None
        assert len(view.state.items) == 3

    @pytest.mark.asyncio
    async def test_billing_and_portal_payment(self, config, backend):
        staff = self.open_console(config, backend)
        await staff.login("bob", "password123")

        bills = staff.list_view("billing")
        await bills.mount()
        form = bills.open_create()
        for name, value in (
            ("Customer_ID", "2"), ("Meter_ID", "20"), ("Previous_Reading", "100"),
            ("Current_Reading", "180.5"), ("Rate_Applied", "4"), ("Amount_Due", "322"),
        ):
            form.set_value(name, value)
        assert await bills.submit() is True

        created = bills.state.items[-1]
        assert created.Bill_ID == 44
        assert created.Total_Unit == 80.5
        sent = json.loads(backend.requests_to("POST", "/api/billing")[0].content)
        assert "Bill_ID" not in sent
        assert "Total_Unit" not in sent

        staff.logout()

        portal = self.open_console(config, backend).portal_view()
        unpaid = await portal.lookup("malee@example.com")
        assert [b.Bill_ID for b in unpaid] == [44]

        assert await portal.checkout(unpaid[0]) is True
        assert portal.bills == []
        assert backend.records["billing"][44]["Paid_Status"] is True
        assert "Authorization" not in backend.requests_to("POST", "/public/bills/44/pay")[0].headers
