"""Pydantic request and response schemas for the HTTP API."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from crm_chat.core.messages import REG_INVALID_ROLE
from crm_chat.core.permissions import ROLES
from crm_chat.models.customer import CustomerStatus


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: str
    name: Optional[str] = None
    phone: Optional[str] = None
    profile_picture: Optional[str] = None
    created_at: Optional[datetime] = None


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: str
    name: Optional[str] = Field(None, max_length=100)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        if v not in ROLES:
            raise ValueError(REG_INVALID_ROLE)
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: UserRead


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    profile_picture: Optional[str] = Field(None, max_length=500)
    current_password: Optional[str] = Field(None, alias="currentPassword")
    new_password: Optional[str] = Field(None, alias="newPassword", min_length=8, max_length=128)

    model_config = ConfigDict(populate_by_name=True)


class ActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: Optional[UUID] = None
    activity_type: str
    details: dict[str, Any] = {}
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=200)
    industry: Optional[str] = Field(None, max_length=100)
    location: Optional[str] = Field(None, max_length=200)
    status: str = CustomerStatus.LEAD
    notes: Optional[str] = None
    assigned_to: Optional[UUID] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        allowed = (
            CustomerStatus.ACTIVE,
            CustomerStatus.INACTIVE,
            CustomerStatus.LEAD,
            CustomerStatus.CONVERTED,
        )
        if v not in allowed:
            raise ValueError(f"Status must be one of: {', '.join(allowed)}")
        return v


class CustomerRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    industry: Optional[str] = None
    location: Optional[str] = None
    status: str
    notes: Optional[str] = None
    assigned_to: Optional[UUID] = None
    created_by: Optional[UUID] = None
    last_contact_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CustomerPage(BaseModel):
    customers: list[CustomerRead]
    total: int
    page: int
    page_size: int


class ChatSessionCreate(BaseModel):
    customer_id: UUID = Field(..., alias="customerId")

    model_config = ConfigDict(populate_by_name=True)
