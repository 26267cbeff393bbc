# hosteldesk/schemas/escalations.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from hosteldesk.services.escalations import parse_level


class ManualEscalationIn(BaseModel):
    ticket_id: int
    escalated_to_id: int
    reason: str = Field(min_length=1, max_length=2000)
    escalation_level: int = 1

    @field_validator("escalation_level", mode="before")
    @classmethod
    def _level(cls, v: Any) -> int:
        # приймаємо 2, "2" або "HIGH_NO_PROGRESS"
        return int(parse_level(v))


class ResolveEscalationIn(BaseModel):
    resolution_note: Optional[str] = Field(default=None, max_length=2000)


class EscalationOut(BaseModel):
    id: int
    ticket_id: int
    escalated_from_id: Optional[int] = None
    escalated_to_id: Optional[int] = None
    reason: str
    escalation_level: int
    level_label: str
    level_color: str
    is_auto_escalated: bool
    escalated_at: datetime
    resolved_at: Optional[datetime] = None
    resolution_note: Optional[str] = None
    overdue: bool


class EscalationStats(BaseModel):
    total_escalations: int
    active_escalations: int
    overdue_escalations: int
    auto_escalations: int
    escalations_by_level: Dict[str, int]
