# hosteldesk/schemas/bulk.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from hosteldesk.db.models import TicketStatus as Status


class BulkStatusIn(BaseModel):
    ticket_ids: List[int] = Field(min_length=1)
    status: Status
    comment: Optional[str] = Field(default=None, max_length=2000)


class BulkAssignIn(BaseModel):
    ticket_ids: List[int] = Field(min_length=1)
    staff_id: int


class BulkExportIn(BaseModel):
    # порожньо = усі заявки
    ticket_ids: List[int] = Field(default_factory=list)


class BulkResultOut(BaseModel):
    successful: List[str]
    failed: List[str]
    success_count: int
    failure_count: int
    total_count: int
    success_rate: float
