# hosteldesk/api/routes/bulk.py
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from ..deps import DBDep, UserDep, require_permission
from hosteldesk.db.models import User
from hosteldesk.schemas.bulk import BulkAssignIn, BulkExportIn, BulkResultOut, BulkStatusIn
from hosteldesk.services.bulk import bulk_assign, bulk_update_status, export_tickets_csv

router = APIRouter(dependencies=[Depends(require_permission("bulk_ticket_operations"))])


@router.post("/update-status", response_model=BulkResultOut)
async def update_status(payload: BulkStatusIn, db: DBDep, current: UserDep):
    result = await bulk_update_status(db, payload.ticket_ids, payload.status, current, payload.comment)
    return result.as_dict()


@router.post("/assign", response_model=BulkResultOut)
async def assign(payload: BulkAssignIn, db: DBDep, current: UserDep):
    # неіснуючий виконавець → кожна заявка потрапить у failed
    staff = await db.get(User, payload.staff_id)
    result = await bulk_assign(db, payload.ticket_ids, staff, current)
    return result.as_dict()


@router.post("/export")
async def export(db: DBDep, payload: BulkExportIn | None = None):
    body = await export_tickets_csv(db, payload.ticket_ids if payload else None)
    filename = f"tickets-{datetime.now(timezone.utc):%Y%m%d-%H%M%S}.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
