# hosteldesk/schemas/users.py
from __future__ import annotations
from pydantic import BaseModel, EmailStr, Field, model_validator

from hosteldesk.db.models import HostelBlock, RoleEnum as Role, StaffVertical


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: Role = Role.STUDENT
    staff_vertical: StaffVertical | None = None
    staff_id: str | None = Field(default=None, max_length=50)
    student_id: str | None = Field(default=None, max_length=50)
    room_number: str | None = Field(default=None, max_length=20)
    hostel_block: HostelBlock | None = None
    phone: str | None = Field(default=None, max_length=32)

    @model_validator(mode="after")
    def _vertical_only_for_staff(self):
        # вертикаль має сенс лише для персоналу
        if self.role == Role.STAFF and self.staff_vertical is None:
            raise ValueError("staff_vertical is required for STAFF users")
        if self.role != Role.STAFF:
            self.staff_vertical = None
        return self


class UserAdminUpdate(BaseModel):
    # усі поля опційні; змінюються частково
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    password: str | None = Field(default=None, min_length=6, max_length=128)
    role: Role | None = None
    staff_vertical: StaffVertical | None = None
    staff_id: str | None = Field(default=None, max_length=50)
    student_id: str | None = Field(default=None, max_length=50)
    room_number: str | None = Field(default=None, max_length=20)
    hostel_block: HostelBlock | None = None
    phone: str | None = Field(default=None, max_length=32)


class UserStatusIn(BaseModel):
    is_active: bool
