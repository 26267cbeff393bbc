# hosteldesk/schemas/auth.py
from __future__ import annotations
from pydantic import BaseModel, ConfigDict, EmailStr


class AuthenticateIn(BaseModel):
    email: EmailStr
    password: str


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    full_name: str | None = None
    role: str
    staff_vertical: str | None = None
    staff_id: str | None = None
    student_id: str | None = None
    room_number: str | None = None
    hostel_block: str | None = None
    phone: str | None = None
    is_active: bool | None = None


class AuthenticateOut(BaseModel):
    authenticated: bool = True
    user: UserOut
    token: str
    token_type: str = "bearer"
