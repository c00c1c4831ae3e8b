"""
Public customer portal client.

Portal endpoints sit outside the API prefix and need no credential.
"""

import json
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from shared.logging import get_logger
from ..domain.models import Bill
from .gateway import RequestGateway

DEFAULT_PAYMENT_METHOD = "Online Portal"


class PortalClient:
    """Unpaid-bill lookup and checkout for end customers."""

    def __init__(self, gateway: RequestGateway, payment_method: str = DEFAULT_PAYMENT_METHOD):
        self.gateway = gateway
        self.payment_method = payment_method
        self.logger = get_logger("console.portal_client")

    async def get_unpaid_bills(self, identifier: str) -> List[Bill]:
        """Unpaid bills of the customer with this email or phone number."""
        endpoint = f"/public/customer-bills?identifier={quote(identifier, safe='')}"
        data = await self.gateway.request(endpoint, without_api_prefix=True)
        return [Bill.model_validate(item) for item in (data or [])]

    async def pay_bill(self, bill_id: Union[int, str], payment_method: Optional[str] = None) -> Optional[Dict[str, Any]]:
        body = json.dumps({"payment_method": payment_method or self.payment_method})
        data = await self.gateway.request(
            f"/public/bills/{bill_id}/pay",
            method="POST",
            body=body,
            without_api_prefix=True,
        )
        self.logger.info("Portal payment submitted", bill_id=bill_id)
        return data if isinstance(data, dict) else None
