"""Pydantic schemas for the contact relay API."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ContactRequest(BaseModel):
    """
    Schema for contact form submission.

    Every field is optional at the schema level so that a missing field is
    reported by the endpoint as "All fields are required" instead of a
    generic body validation error.
    """
    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[str] = None
    message: Optional[str] = None
    captcha_token: Optional[str] = Field(None, alias="captchaToken")


class ContactResponse(BaseModel):
    """Schema for a successful contact form response."""
    success: bool
    message: str


class ErrorResponse(BaseModel):
    """Schema for every rejected or failed request."""
    success: bool = False
    error: str


class HealthResponse(BaseModel):
    status: str
    message: str
