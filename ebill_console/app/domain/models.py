"""
Backend DTOs.

Field names follow the backend's JSON. The console does not own these
shapes: unknown fields are preserved and every attribute is optional.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class BackendRecord(BaseModel):
    model_config = ConfigDict(extra="allow")


class User(BackendRecord):
    id: Optional[int] = None
    username: Optional[str] = None
    email: Optional[str] = None
    permission: Optional[str] = None


class Customer(BackendRecord):
    Customer_ID: Optional[int] = None
    Name: Optional[str] = None
    Address: Optional[str] = None
    Email: Optional[str] = None
    Phone_Number: Optional[str] = None
    Registration_Date: Optional[str] = None


class Meter(BackendRecord):
    Meter_ID: Optional[int] = None
    Customer_ID: Optional[int] = None
    Meter_Number: Optional[str] = None
    Installation_Date: Optional[str] = None
    Active_Status: Optional[bool] = None


class Bill(BackendRecord):
    Bill_ID: Optional[int] = None
    Customer_ID: Optional[int] = None
    Customer_Name: Optional[str] = None
    Meter_ID: Optional[int] = None
    Billing_Date: Optional[str] = None
    Due_Date: Optional[str] = None
    Previous_Reading: Optional[float] = None
    Current_Reading: Optional[float] = None
    Rate_Applied: Optional[float] = None
    Total_Unit: Optional[float] = None
    Amount_Due: Optional[float] = None
    Paid_Status: Optional[bool] = None


class Payment(BackendRecord):
    Payment_ID: Optional[int] = None
    Bill_ID: Optional[int] = None
    Processed_By: Optional[int] = None
    Payment_Date: Optional[str] = None
    Amount_Paid: Optional[float] = None
    Payment_Method: Optional[str] = None
    Payment_Status: Optional[str] = None


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    token: str
    username: str
    permission: Optional[str] = None
