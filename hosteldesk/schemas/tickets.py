# hosteldesk/schemas/tickets.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hosteldesk.db.models import (
    HostelBlock,
    TicketCategory as Category,
    TicketPriority as Priority,
    TicketStatus as Status,
)

# старий фронт надсилав URGENT замість EMERGENCY
PRIORITY_ALIASES = {"URGENT": Priority.EMERGENCY.value}


def _normalize_priority(v):
    if isinstance(v, str):
        s = v.strip().upper()
        return PRIORITY_ALIASES.get(s, s)
    return v


def _strip_text(v):
    return v.strip() if isinstance(v, str) else v


class TicketCreate(BaseModel):
    title: str = Field(..., min_length=10, max_length=200)
    description: str = Field(..., min_length=20)
    category: Category = Category.GENERAL
    custom_category: Optional[str] = Field(default=None, max_length=100)
    priority: Priority = Priority.MEDIUM
    hostel_block: Optional[HostelBlock] = None
    room_number: Optional[str] = Field(default=None, max_length=20)
    location_details: Optional[str] = Field(default=None, max_length=500)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v):
        return _normalize_priority(v)

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip(cls, v):
        return _strip_text(v)

    @model_validator(mode="after")
    def _custom_category(self):
        custom = (self.custom_category or "").strip()
        if self.category == Category.CUSTOM and not custom:
            raise ValueError("custom_category is required when category is CUSTOM")
        # інакше поле ігноруємо: CUSTOM ⇔ custom_category
        self.custom_category = custom if self.category == Category.CUSTOM else None
        return self


class TicketUpdate(BaseModel):
    # статус і виконавець сюди не входять: для них є окремі дії
    title: Optional[str] = Field(default=None, min_length=10, max_length=200)
    description: Optional[str] = Field(default=None, min_length=20)
    category: Optional[Category] = None
    custom_category: Optional[str] = Field(default=None, max_length=100)
    priority: Optional[Priority] = None
    hostel_block: Optional[HostelBlock] = None
    room_number: Optional[str] = Field(default=None, max_length=20)
    location_details: Optional[str] = Field(default=None, max_length=500)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, v):
        return _normalize_priority(v)

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip(cls, v):
        return _strip_text(v)


class TicketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_number: str
    title: str
    description: str
    category: Category
    custom_category: Optional[str] = None
    effective_category: str
    priority: Priority
    status: Status
    created_by_id: int
    assigned_to_id: Optional[int] = None
    hostel_block: Optional[HostelBlock] = None
    room_number: Optional[str] = None
    location_details: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    assigned_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    sla_breach_at: Optional[datetime] = None
    satisfaction_rating: Optional[int] = None
    feedback: Optional[str] = None


class RatingIn(BaseModel):
    rating: int = Field(ge=1, le=5)
    feedback: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("feedback", mode="before")
    @classmethod
    def _strip(cls, v):
        # порожній відгук зберігаємо як NULL
        v = _strip_text(v)
        return v or None


class CommentCreate(BaseModel):
    body: str = Field(min_length=1, max_length=10_000)
    is_internal: bool = False


class CommentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    author_id: int
    body: str
    is_internal: bool
    created_at: datetime


class HistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    changed_by_id: Optional[int] = None
    field: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    comment: Optional[str] = None
    created_at: datetime
