# hosteldesk/schemas/mappings.py
from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from hosteldesk.db.models import HostelBlock


class MappingCreate(BaseModel):
    staff_id: int
    hostel_block: HostelBlock | None = None  # None = усі корпуси
    category: str = Field(min_length=1, max_length=100)
    priority_level: int = Field(default=1, ge=1, le=10)
    capacity_weight: float = Field(default=1.0, ge=0.1, le=2.0)
    expertise_level: int = Field(default=1, ge=1, le=5)
    is_active: bool = True


class MappingUpdate(BaseModel):
    hostel_block: HostelBlock | None = None
    category: str | None = Field(default=None, min_length=1, max_length=100)
    priority_level: int | None = Field(default=None, ge=1, le=10)
    capacity_weight: float | None = Field(default=None, ge=0.1, le=2.0)
    expertise_level: int | None = Field(default=None, ge=1, le=5)
    is_active: bool | None = None


class MappingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    staff_id: int
    hostel_block: HostelBlock | None = None
    category: str
    priority_level: int
    capacity_weight: float
    expertise_level: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
