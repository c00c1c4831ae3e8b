"""
Domain layer for the eBill console.

- models: backend DTOs (pass-through pydantic models)
- forms: draft seeding, validation and payload coercion per entity
- views: list/portal screen state driving the adapters
"""

from .models import User, Customer, Meter, Bill, Payment, LoginRequest, LoginResponse
from .forms import EntityForm, FormSpec, FormField, FieldKind, FORMS
from .views import ListView, ListState, PortalView

__all__ = [
    "User",
    "Customer",
    "Meter",
    "Bill",
    "Payment",
    "LoginRequest",
    "LoginResponse",
    "EntityForm",
    "FormSpec",
    "FormField",
    "FieldKind",
    "FORMS",
    "ListView",
    "ListState",
    "PortalView",
]
