"""
CRUD clients for backend resources.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ValidationError as ModelValidationError

from shared.logging import get_logger
from shared.errors import EbillClientException, MalformedResponse
from ..domain.models import Bill, Customer, Meter, Payment, User
from .gateway import RequestGateway, EXCERPT_LENGTH

RecordId = Union[int, str]


@dataclass(frozen=True)
class ResourceDefinition:
    """Where a resource lives and how the console names it."""

    name: str
    path: str
    model: Type[BaseModel]
    id_field: str
    singular: str
    confirm_noun: str
    read_only: bool = False
    without_api_prefix: bool = False


RESOURCES: Dict[str, ResourceDefinition] = {
    "users": ResourceDefinition(
        name="users", path="/users", model=User, id_field="id",
        singular="user", confirm_noun="user", read_only=True, without_api_prefix=True,
    ),
    "customers": ResourceDefinition(
        name="customers", path="/customers", model=Customer, id_field="Customer_ID",
        singular="customer", confirm_noun="customer",
    ),
    "meters": ResourceDefinition(
        name="meters", path="/meters", model=Meter, id_field="Meter_ID",
        singular="meter", confirm_noun="meter",
    ),
    "billing": ResourceDefinition(
        name="billing", path="/billing", model=Bill, id_field="Bill_ID",
        singular="bill", confirm_noun="bill",
    ),
    "payments": ResourceDefinition(
        name="payments", path="/payments", model=Payment, id_field="Payment_ID",
        singular="payment", confirm_noun="payment record",
    ),
}


class ReadOnlyResource(EbillClientException):
    """Write attempted on a resource the console only lists."""

    def __init__(self, resource: str):
        super().__init__("READ_ONLY_RESOURCE", f"{resource} is read-only", {"resource": resource})


class ResourceClient:
    """Client for one backend collection."""

    def __init__(self, gateway: RequestGateway, definition: ResourceDefinition):
        self.gateway = gateway
        self.definition = definition
        self.logger = get_logger(f"console.{definition.name}")

    @property
    def model(self) -> Type[BaseModel]:
        return self.definition.model

    async def get_all(self) -> List[BaseModel]:
        data = await self._call(self.definition.path)
        return [self.parse(item) for item in (data or [])]

    async def get_by_id(self, record_id: RecordId) -> Optional[BaseModel]:
        data = await self._call(self._item_path(record_id))
        return self.parse(data) if data is not None else None

    async def create(self, payload: Dict[str, Any]) -> Optional[BaseModel]:
        self._ensure_writable()
        data = await self._call(self.definition.path, method="POST", body=json.dumps(payload))
        self.logger.info("Record created", record_id=_record_id(data, self.definition.id_field))
        return self.parse(data) if isinstance(data, dict) else None

    async def update(self, record_id: RecordId, payload: Dict[str, Any]) -> Optional[BaseModel]:
        self._ensure_writable()
        data = await self._call(self._item_path(record_id), method="PUT", body=json.dumps(payload))
        self.logger.info("Record updated", record_id=record_id)
        return self.parse(data) if isinstance(data, dict) else None

    async def delete(self, record_id: RecordId) -> None:
        self._ensure_writable()
        await self._call(self._item_path(record_id), method="DELETE")
        self.logger.info("Record deleted", record_id=record_id)

    def parse(self, data: Any) -> BaseModel:
        """Validate one backend record into its DTO."""
        try:
            return self.model.model_validate(data)
        except ModelValidationError as e:
            raise MalformedResponse(
                f"{self.definition.singular} record did not match the expected shape",
                json.dumps(data, default=str)[:EXCERPT_LENGTH],
                details={"errors": e.errors(include_url=False)}
            )

    async def _call(self, endpoint: str, method: str = "GET", body: Optional[str] = None) -> Any:
        return await self.gateway.request(
            endpoint,
            method=method,
            body=body,
            without_api_prefix=self.definition.without_api_prefix,
        )

    def _item_path(self, record_id: RecordId) -> str:
        return f"{self.definition.path}/{record_id}"

    def _ensure_writable(self) -> None:
        if self.definition.read_only:
            raise ReadOnlyResource(self.definition.name)


def _record_id(data: Any, id_field: str) -> Any:
    if isinstance(data, dict):
        return data.get(id_field)
    return None


def build_resource_clients(gateway: RequestGateway) -> Dict[str, ResourceClient]:
    """One client per known resource, keyed by resource name."""
    return {name: ResourceClient(gateway, definition) for name, definition in RESOURCES.items()}
