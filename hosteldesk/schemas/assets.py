# hosteldesk/schemas/assets.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hosteldesk.db.models import AssetStatus, AssetType


class AssetCreate(BaseModel):
    asset_tag: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    type: AssetType = AssetType.OTHER
    status: AssetStatus = AssetStatus.ACTIVE
    building: Optional[str] = Field(default=None, max_length=100)
    room_number: Optional[str] = Field(default=None, max_length=20)
    location: Optional[str] = Field(default=None, max_length=255)
    manufacturer: Optional[str] = Field(default=None, max_length=100)
    model: Optional[str] = Field(default=None, max_length=100)
    serial_number: Optional[str] = Field(default=None, max_length=100)
    purchase_date: Optional[datetime] = None
    warranty_expiry: Optional[datetime] = None
    purchase_price: Optional[float] = Field(default=None, ge=0)
    assigned_to_id: Optional[int] = None


class AssetUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[AssetType] = None
    status: Optional[AssetStatus] = None
    building: Optional[str] = Field(default=None, max_length=100)
    room_number: Optional[str] = Field(default=None, max_length=20)
    location: Optional[str] = Field(default=None, max_length=255)
    manufacturer: Optional[str] = Field(default=None, max_length=100)
    model: Optional[str] = Field(default=None, max_length=100)
    serial_number: Optional[str] = Field(default=None, max_length=100)
    purchase_date: Optional[datetime] = None
    warranty_expiry: Optional[datetime] = None
    purchase_price: Optional[float] = Field(default=None, ge=0)
    assigned_to_id: Optional[int] = None


class AssetOut(AssetCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: datetime
    updated_at: datetime


class MovementCreate(BaseModel):
    asset_id: int
    to_building: Optional[str] = Field(default=None, max_length=100)
    to_room: Optional[str] = Field(default=None, max_length=20)
    reason: Optional[str] = Field(default=None, max_length=2000)


class MovementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    asset_id: int
    from_building: Optional[str] = None
    from_room: Optional[str] = None
    to_building: Optional[str] = None
    to_room: Optional[str] = None
    reason: Optional[str] = None
    moved_by_id: Optional[int] = None
    moved_at: datetime


class MaintenanceCreate(BaseModel):
    asset_id: int
    title: str = Field(min_length=1, max_length=255)
    notes: Optional[str] = None
    scheduled_for: datetime
    frequency_days: Optional[int] = Field(default=None, ge=1)


class MaintenanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    asset_id: int
    title: str
    notes: Optional[str] = None
    scheduled_for: datetime
    frequency_days: Optional[int] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
