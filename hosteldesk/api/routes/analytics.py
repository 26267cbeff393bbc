# hosteldesk/api/routes/analytics.py
from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import DBDep, require_permission
from hosteldesk.services.reports import operational_dashboard

router = APIRouter(dependencies=[Depends(require_permission("analytics_access"))])


@router.get("/advanced/dashboard/operational")
async def operational(db: DBDep, time_range: str = Query(default="7d", alias="timeRange")):
    try:
        return await operational_dashboard(db, time_range)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
