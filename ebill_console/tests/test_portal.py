"""
Tests for the public customer portal.
"""

import json
from urllib.parse import parse_qs

import pytest
from unittest.mock import AsyncMock, patch

from ebill_console.app.console import Console
from ebill_console.app.domain.views import PortalView
from ebill_console.app.session.storage import MemoryStorage
from shared.config import get_config
from shared.metrics import MetricsCollector
from shared.test_helpers import FakeEbillBackend


class TestPortalView:
    """Test cases for PortalView."""

    @pytest.fixture
    def backend(self):
        return FakeEbillBackend()

    @pytest.fixture
    def console(self, backend):
        return Console(
            config=get_config(backend_url="http://backend.test"),
            storage=MemoryStorage(),
            transport=backend.transport(),
            metrics=MetricsCollector("console-test"),
        )

    @pytest.fixture
    def view(self, console):
        return console.portal_view()

    @pytest.mark.asyncio
    async def test_lookup_lists_unpaid_bills_without_credential(self, view, backend):
        bills = await view.lookup("somchai@example.com")

        assert [b.Bill_ID for b in bills] == [42, 43]
        assert view.message == ""
        request = backend.requests[0]
        assert request.url.path == "/public/customer-bills"
        assert "Authorization" not in request.headers

    @pytest.mark.asyncio
    async def test_identifier_is_url_encoded(self, view, backend):
        await view.lookup("+66 555&x=1")

        query = parse_qs(backend.requests[0].url.query.decode())
        assert query == {"identifier": ["+66 555&x=1"]}

    @pytest.mark.asyncio
    async def test_no_bills_message(self, view):
        bills = await view.lookup("nobody@example.com")

        assert bills == []
        assert view.message == PortalView.NO_BILLS_MESSAGE
        assert view.error == ""

    @pytest.mark.asyncio
    async def test_blank_identifier_is_rejected_locally(self, view, backend):
        await view.lookup("   ")

        assert view.error == PortalView.MISSING_IDENTIFIER
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_checkout_removes_bill_without_refetch(self, view, backend):
        await view.lookup("somchai@example.com")
        bill = view.bills[0]

        assert await view.checkout(bill) is True

        assert [b.Bill_ID for b in view.bills] == [43]
        assert view.message == "Payment for bill 42 received via Online Portal"
        assert len(backend.requests_to("GET", "/public/customer-bills")) == 1
        pay = backend.requests_to("POST", "/public/bills/42/pay")[0]
        assert json.loads(pay.content) == {"payment_method": "Online Portal"}

    @pytest.mark.asyncio
    async def test_checkout_failure_keeps_bill(self, view, backend):
        await view.lookup("somchai@example.com")
        backend.records["billing"][42]["Paid_Status"] = True

        assert await view.checkout(view.bills[0]) is False

        assert view.checkout_error == "Bill already paid"
        assert [b.Bill_ID for b in view.bills] == [42, 43]
        assert view.loading is False

    @pytest.mark.asyncio
    async def test_checkout_fallback_message(self, console):
        view = console.portal_view()
        view.bills = [{"Bill_ID": 5}]
        with patch.object(console.portal, "pay_bill", AsyncMock(return_value=None)):
            assert await view.checkout({"Bill_ID": 5}) is True

        assert view.message == "Payment for Bill ID: 5 processed successfully!"
        assert view.bills == []

