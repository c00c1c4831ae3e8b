"""
Edit forms for backend records.

A form holds a draft of string values the way an input widget would:
numbers are stringified, dates are plain ``YYYY-MM-DD``. Building the
payload coerces the draft back to backend types, strips server-computed
fields and drops a blank identifier on create so the backend assigns one.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel

from shared.logging import get_logger
from shared.errors import EbillClientException, ValidationError

TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on"})
FALSE_STRINGS = frozenset({"false", "0", "no", "n", "off", ""})


class FieldKind(str, Enum):
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class FormField:
    name: str
    label: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    default: Any = ""
    default_today: bool = False
    choices: Tuple[str, ...] = ()

    @property
    def numeric(self) -> bool:
        return self.kind in (FieldKind.INTEGER, FieldKind.DECIMAL)

    def initial_value(self) -> Any:
        if self.default_today:
            return today()
        if self.kind is FieldKind.BOOLEAN:
            return bool(self.default)
        return self.default


@dataclass(frozen=True)
class FormSpec:
    entity: str
    id_field: str
    id_label: str
    fields: Tuple[FormField, ...]
    computed_fields: Tuple[str, ...] = ()
    title_create: str = ""
    title_edit: str = ""

    def get_field(self, name: str) -> Optional[FormField]:
        for form_field in self.fields:
            if form_field.name == name:
                return form_field
        return None

    @property
    def field_names(self) -> Tuple[str, ...]:
        return (self.id_field,) + tuple(f.name for f in self.fields)


def today() -> str:
    """Today's calendar date in UTC."""
    return datetime.now(timezone.utc).date().isoformat()


def to_calendar_date(value: Any) -> str:
    """Reduce a backend date/timestamp to ``YYYY-MM-DD`` (UTC)."""
    if not value:
        return ""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value.isoformat()
    else:
        text = str(value).strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return ""
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def stringify_number(value: Any) -> str:
    """Render a number for a text input; missing values become blank."""
    if value is None or value == "":
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
        raise ValidationError(f"'{value}' is not a yes/no value.")
    return bool(value)


CUSTOMER_FORM = FormSpec(
    entity="customer",
    id_field="Customer_ID",
    id_label="Customer ID",
    title_create="Add Customer",
    title_edit="Edit Customer",
    fields=(
        FormField("Name", "Name", required=True),
        FormField("Address", "Address"),
        FormField("Email", "Email"),
        FormField("Phone_Number", "Phone Number"),
        FormField("Registration_Date", "Registration Date", FieldKind.DATE, required=True, default_today=True),
    ),
)

METER_FORM = FormSpec(
    entity="meter",
    id_field="Meter_ID",
    id_label="Meter ID",
    title_create="Add Meter",
    title_edit="Edit Meter",
    fields=(
        FormField("Customer_ID", "Customer ID", FieldKind.INTEGER, required=True),
        FormField("Meter_Number", "Meter Number", required=True),
        FormField("Installation_Date", "Installation Date", FieldKind.DATE),
        FormField("Active_Status", "Active", FieldKind.BOOLEAN, default=False),
    ),
)

BILL_FORM = FormSpec(
    entity="bill",
    id_field="Bill_ID",
    id_label="Bill ID",
    title_create="Create Bill",
    title_edit="Edit Bill",
    fields=(
        FormField("Customer_ID", "Customer ID", FieldKind.INTEGER, required=True),
        FormField("Meter_ID", "Meter ID", FieldKind.INTEGER, required=True),
        FormField("Billing_Date", "Billing Date", FieldKind.DATE, required=True, default_today=True),
        FormField("Previous_Reading", "Previous Reading", FieldKind.DECIMAL, required=True),
        FormField("Current_Reading", "Current Reading", FieldKind.DECIMAL, required=True),
        FormField("Rate_Applied", "Rate Applied", FieldKind.DECIMAL, required=True),
        FormField("Amount_Due", "Amount Due", FieldKind.DECIMAL, required=True),
        FormField("Due_Date", "Due Date", FieldKind.DATE),
        FormField("Paid_Status", "Paid", FieldKind.BOOLEAN, default=False),
    ),
    # Computed or joined by the backend
    computed_fields=("Total_Unit", "Customer_Name"),
)

PAYMENT_METHODS = ("Credit Card", "Bank Transfer", "Cash", "Mobile Payment", "Other")

PAYMENT_FORM = FormSpec(
    entity="payment",
    id_field="Payment_ID",
    id_label="Payment ID",
    title_create="Record Payment",
    title_edit="Edit Payment",
    fields=(
        FormField("Bill_ID", "Bill ID", FieldKind.INTEGER, required=True),
        FormField("Payment_Date", "Payment Date", FieldKind.DATE, required=True),
        FormField("Amount_Paid", "Amount Paid", FieldKind.DECIMAL, required=True),
        FormField("Payment_Method", "Payment Method", default="Credit Card", choices=PAYMENT_METHODS),
    ),
)

FORMS: Dict[str, FormSpec] = {
    "customers": CUSTOMER_FORM,
    "meters": METER_FORM,
    "billing": BILL_FORM,
    "payments": PAYMENT_FORM,
}

SubmitCallback = Callable[[Dict[str, Any]], Awaitable[Any]]


class EntityForm:
    """Create/edit form for one record."""

    def __init__(self, spec: FormSpec, initial: Optional[Any] = None, edit_mode: bool = False):
        self.spec = spec
        self.edit_mode = edit_mode
        self.is_open = True
        self.error = ""
        self.logger = get_logger(f"console.forms.{spec.entity}")
        self.draft = self._seed(_as_mapping(initial))

    @property
    def title(self) -> str:
        return self.spec.title_edit if self.edit_mode else self.spec.title_create

    def _seed(self, initial: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        if initial is None:
            draft: Dict[str, Any] = {self.spec.id_field: ""}
            for form_field in self.spec.fields:
                draft[form_field.name] = form_field.initial_value()
            return draft

        # Unknown keys ride along untouched
        draft = dict(initial)
        draft[self.spec.id_field] = stringify_number(initial.get(self.spec.id_field))
        for form_field in self.spec.fields:
            value = initial.get(form_field.name)
            if form_field.numeric:
                draft[form_field.name] = stringify_number(value)
            elif form_field.kind is FieldKind.DATE:
                draft[form_field.name] = to_calendar_date(value)
            elif form_field.kind is FieldKind.BOOLEAN:
                draft[form_field.name] = bool(value) if value is not None else bool(form_field.default)
            elif value is None:
                draft[form_field.name] = form_field.initial_value()
        return draft

    def set_value(self, name: str, value: Any) -> None:
        """Update one draft value as an input widget would."""
        if name == self.spec.id_field and self.edit_mode:
            raise ValidationError(f"{self.spec.id_label} cannot be changed.")
        form_field = self.spec.get_field(name)
        if name != self.spec.id_field and form_field is None:
            raise ValidationError(f"Unknown {self.spec.entity} field: {name}")
        if form_field is not None and form_field.kind is FieldKind.BOOLEAN:
            self.draft[name] = parse_bool(value)
        else:
            self.draft[name] = "" if value is None else str(value)

    def validate(self) -> None:
        """Required-field and numeric checks; raises ``ValidationError``."""
        for form_field in self.spec.fields:
            value = self.draft.get(form_field.name)
            if form_field.required and _is_blank(value):
                raise ValidationError(f"{form_field.label} is required.", {"field": form_field.name})
            if form_field.numeric and not _is_blank(value):
                self._parse_number(form_field, value)
            if form_field.choices and not _is_blank(value) and value not in form_field.choices:
                raise ValidationError(
                    f"{form_field.label} must be one of: {', '.join(form_field.choices)}.",
                    {"field": form_field.name}
                )
        identifier = self.draft.get(self.spec.id_field)
        if self.edit_mode and _is_blank(identifier):
            raise ValidationError(f"{self.spec.id_label} is required.", {"field": self.spec.id_field})
        if not _is_blank(identifier):
            self._parse_id(identifier)

    def build_payload(self) -> Dict[str, Any]:
        """Validated payload ready to send to the backend."""
        self.validate()
        payload = dict(self.draft)

        for form_field in self.spec.fields:
            if not form_field.numeric:
                continue
            value = payload.get(form_field.name)
            if _is_blank(value):
                payload.pop(form_field.name, None)
            else:
                payload[form_field.name] = self._parse_number(form_field, value)

        for name in self.spec.computed_fields:
            payload.pop(name, None)

        identifier = self.draft.get(self.spec.id_field)
        if self.edit_mode or not _is_blank(identifier):
            payload[self.spec.id_field] = self._parse_id(identifier)
        else:
            payload.pop(self.spec.id_field, None)

        return payload

    async def submit(self, on_submit: SubmitCallback) -> bool:
        """Validate and hand the payload to ``on_submit``.

        Closes the form on success. On failure the message is kept in
        ``error`` and the form stays open.
        """
        self.error = ""
        try:
            payload = self.build_payload()
            await on_submit(payload)
        except EbillClientException as e:
            self.error = e.message or "An error occurred."
            self.logger.info("Form submission failed", error=self.error, code=e.code)
            return False
        self.close()
        return True

    def close(self) -> None:
        self.is_open = False

    def _parse_id(self, value: Any) -> int:
        try:
            return int(str(value).strip())
        except ValueError:
            raise ValidationError(f"{self.spec.id_label} must be a whole number.", {"field": self.spec.id_field})

    def _parse_number(self, form_field: FormField, value: Any) -> Any:
        text = str(value).strip()
        try:
            if form_field.kind is FieldKind.INTEGER:
                return int(text)
            return float(text)
        except ValueError:
            kind = "a whole number" if form_field.kind is FieldKind.INTEGER else "a number"
            raise ValidationError(f"{form_field.label} must be {kind}.", {"field": form_field.name})


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _as_mapping(record: Any) -> Optional[Mapping[str, Any]]:
    if record is None:
        return None
    if isinstance(record, BaseModel):
        return record.model_dump(exclude_unset=True)
    return record
