"""
Subject Models
==============

Regulated entities monitored by the engine.

Version: 0.1.0
"""

from datetime import date

from pydantic import BaseModel, Field, field_validator


class SubjectProfile(BaseModel):
    """A regulated business. Read-only to the engine."""

    id: str = Field(..., min_length=1)
    tenant_id: str = Field(..., min_length=1)
    name: str = ""
    subject_type: str
    registration_date: date | None = None

    # Registration key (tin, vat, nis, ...) -> number; None or absent means missing
    registrations: dict[str, str | None] = Field(default_factory=dict)

    employee_count: int = Field(default=0, ge=0)
    annual_revenue: int = Field(default=0, ge=0)
    region: str | None = None
    active: bool = True

    @field_validator("subject_type")
    @classmethod
    def normalize_subject_type(cls, v: str) -> str:
        """Subject types are compared in upper case."""
        return v.upper()

    def has_registration(self, key: str) -> bool:
        """Whether the subject holds a non-empty registration number for `key`."""
        value = self.registrations.get(key)
        return bool(value and value.strip())

    @property
    def display_name(self) -> str:
        """Name used in alert text."""
        return self.name or self.id
