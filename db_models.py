from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, field_validator


class LinkPrecedence(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class Contact(BaseModel):
    id: int
    phoneNumber: Optional[str] = None
    email: Optional[str] = None
    linkedId: Optional[int] = None
    linkPrecedence: LinkPrecedence
    createdAt: datetime
    updatedAt: datetime
    deletedAt: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "Contact":
        return cls(**dict(row))


class IdentifyRequest(BaseModel):
    email: Optional[str] = None
    phoneNumber: Optional[str] = None

    @field_validator("phoneNumber", mode="before")
    @classmethod
    def phone_as_string(cls, value):
        # clients send phone numbers both as JSON strings and numbers
        if isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return value


class ContactResponse(BaseModel):
    primaryContactId: int
    emails: List[str]
    phoneNumbers: List[str]
    secondaryContactIds: List[int]


class FinalResponse(BaseModel):
    contact: ContactResponse


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None


@dataclass
class ConsolidatedIdentity:
    """Aggregated view of one cluster, primary's own values first."""
    primary_id: int
    emails: List[str] = field(default_factory=list)
    phone_numbers: List[str] = field(default_factory=list)
    secondary_ids: List[int] = field(default_factory=list)

    def to_response(self) -> FinalResponse:
        return FinalResponse(
            contact=ContactResponse(
                primaryContactId=self.primary_id,
                emails=self.emails,
                phoneNumbers=self.phone_numbers,
                secondaryContactIds=self.secondary_ids,
            )
        )
