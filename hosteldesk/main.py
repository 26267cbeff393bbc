# hosteldesk/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hosteldesk.api.routes import (
    health,
    auth,
    tickets,
    admin,
    escalations,
    analytics,
    bulk,
    assets,
)

from hosteldesk.core.config import settings
from hosteldesk.core.logging import setup_logging, RequestIdMiddleware
from hosteldesk.services.errors import TicketActionError

setup_logging(settings.log_level)
log = logging.getLogger("hosteldesk")

app = FastAPI(
    title="HostelDesk",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url=None,
    openapi_url="/api/openapi.json",
)

# ==== Middlewares ====
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestIdMiddleware)


# ==== Помилки бізнес-правил → {"detail": ...} ====
@app.exception_handler(TicketActionError)
async def ticket_action_error(request: Request, exc: TicketActionError):
    log.info(
        "ticket_action_rejected",
        extra={"path": request.url.path, "detail": exc.detail},
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# ==== API під /api ====
app.include_router(health.router,      prefix="/api",             tags=["health"])
app.include_router(auth.router,        prefix="/api/users",       tags=["auth"])
app.include_router(tickets.router,     prefix="/api/tickets",     tags=["tickets"])
app.include_router(admin.router,       prefix="/api/admin",       tags=["admin"])
app.include_router(escalations.router, prefix="/api/escalations", tags=["escalations"])
app.include_router(analytics.router,   prefix="/api/analytics",   tags=["analytics"])
app.include_router(bulk.router,        prefix="/api/bulk",        tags=["bulk"])
app.include_router(assets.router,      prefix="/api/assets",      tags=["assets"])


@app.get("/", include_in_schema=False)
def root():
    return {"status": "ok", "docs": "/api/docs"}
