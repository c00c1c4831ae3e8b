"""
View state for the console screens.

Views hold what a screen would render (loading flag, error message,
items) and drive the adapters. Once a view is unmounted, late results
from in-flight calls are dropped instead of applied.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Union

from pydantic import BaseModel

from shared.logging import get_logger
from shared.errors import EbillClientException, ValidationError
from ..adapters.portal_client import PortalClient
from ..adapters.resource_client import ResourceClient
from .forms import EntityForm, FormSpec

ConfirmCallback = Callable[[str], bool]


@dataclass
class ListState:
    loading: bool = True
    error: Optional[str] = None
    items: List[Any] = field(default_factory=list)


class ListView:
    """Collection screen: table, create/edit form, delete action."""

    def __init__(self, client: ResourceClient, form_spec: Optional[FormSpec] = None):
        self.client = client
        self.form_spec = form_spec
        self.state = ListState()
        self.mounted = False
        self.editing: Optional[Any] = None
        self.form: Optional[EntityForm] = None
        self.logger = get_logger(f"console.views.{client.definition.name}")

    @property
    def name(self) -> str:
        return self.client.definition.name

    async def mount(self) -> None:
        self.mounted = True
        await self.refresh()

    def unmount(self) -> None:
        self.mounted = False

    async def refresh(self) -> None:
        """Fetch the collection and replace the displayed items."""
        self._update(loading=True, error=None)
        try:
            items = await self.client.get_all()
        except EbillClientException as e:
            self._update(loading=False, error=e.message or f"Failed to fetch {self.name}.")
            return
        self._update(loading=False, items=items)

    def open_create(self) -> EntityForm:
        self.editing = None
        self.form = EntityForm(self._require_form_spec(), edit_mode=False)
        return self.form

    def open_edit(self, record: Any) -> EntityForm:
        self.editing = record
        self.form = EntityForm(self._require_form_spec(), initial=record, edit_mode=True)
        return self.form

    async def submit(self, form: Optional[EntityForm] = None) -> bool:
        """Submit the open form; ``True`` once saved and the list refreshed."""
        form = form or self.form
        if form is None:
            raise ValidationError("No form is open.")
        saved = await form.submit(self.save)
        if saved:
            self.form = None
            self.editing = None
        return saved

    async def save(self, payload: dict) -> None:
        """Create or update, then re-fetch. Errors propagate to the form."""
        if self.editing is not None:
            await self.client.update(self._record_id(self.editing), payload)
        else:
            await self.client.create(payload)
        await self.refresh()

    async def delete(self, record_id: Union[int, str], confirm: ConfirmCallback) -> bool:
        """Delete after interactive confirmation; ``False`` if declined or failed."""
        if not confirm(f"Are you sure you want to delete this {self.client.definition.confirm_noun}?"):
            return False
        try:
            await self.client.delete(record_id)
        except EbillClientException as e:
            self._update(error=e.message or f"Failed to delete {self.client.definition.singular}.")
            return False
        await self.refresh()
        return True

    def _record_id(self, record: Any) -> Any:
        id_field = self.client.definition.id_field
        if isinstance(record, BaseModel):
            return getattr(record, id_field, None)
        return record.get(id_field)

    def _require_form_spec(self) -> FormSpec:
        if self.form_spec is None:
            raise ValidationError(f"{self.name} cannot be edited from the console.")
        return self.form_spec

    def _update(self, **changes: Any) -> None:
        if not self.mounted:
            self.logger.debug("Dropping state update for unmounted view", fields=list(changes))
            return
        for key, value in changes.items():
            setattr(self.state, key, value)


class PortalView:
    """Public unpaid-bill lookup and checkout."""

    NO_BILLS_MESSAGE = "No unpaid bills found for this identifier, or identifier not found."
    MISSING_IDENTIFIER = "Please enter your email or phone number."

    def __init__(self, client: PortalClient):
        self.client = client
        self.identifier = ""
        self.bills: List[Any] = []
        self.loading = False
        self.error = ""
        self.checkout_error = ""
        self.message = ""
        self.logger = get_logger("console.views.portal")

    async def lookup(self, identifier: Optional[str] = None) -> List[Any]:
        if identifier is not None:
            self.identifier = identifier
        if not self.identifier.strip():
            self.error = self.MISSING_IDENTIFIER
            return self.bills

        self.checkout_error = ""
        self.loading = True
        self.error = ""
        self.message = ""
        self.bills = []
        try:
            bills = await self.client.get_unpaid_bills(self.identifier)
            if bills:
                self.bills = bills
            else:
                self.message = self.NO_BILLS_MESSAGE
        except EbillClientException as e:
            self.error = e.message or "Failed to fetch payment information. Please try again."
        finally:
            self.loading = False
        return self.bills

    async def checkout(self, bill: Any) -> bool:
        """Pay one bill and drop it from the displayed list."""
        bill_id = _bill_id(bill)
        self.loading = True
        self.checkout_error = ""
        self.message = ""
        try:
            response = await self.client.pay_bill(bill_id)
        except EbillClientException as e:
            self.checkout_error = e.message or f"Failed to process payment for Bill ID: {bill_id}."
            self.message = ""
            return False
        finally:
            self.loading = False

        self.message = (response or {}).get("message") or f"Payment for Bill ID: {bill_id} processed successfully!"
        self.bills = [b for b in self.bills if _bill_id(b) != bill_id]
        self.logger.info("Bill paid from portal", bill_id=bill_id)
        return True


def _bill_id(bill: Any) -> Any:
    if isinstance(bill, BaseModel):
        return getattr(bill, "Bill_ID", None)
    return bill.get("Bill_ID")
