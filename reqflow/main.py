import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from reqflow.core.config import settings
from reqflow.routers import (
    categories,
    email_jobs,
    item_codes,
    items,
    notifications,
    organizations,
    realtime,
    requisitions,
    users,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

OPENAPI_TAGS = [
    {"name": "Organizations", "description": "Manage organizations and their members."},
    {"name": "Users", "description": "User profiles and notification preferences."},
    {"name": "Item Codes", "description": "Per-organization item code counter settings."},
    {"name": "Categories", "description": "Create, update and retire item categories."},
    {"name": "Items", "description": "Create items with sequentially allocated codes."},
    {"name": "Requisitions", "description": "Draft, submit, approve and reject requisitions."},
    {"name": "Notifications", "description": "Per-organization notification inbox."},
    {"name": "Email Jobs", "description": "Inspect and requeue outbound emails."},
    {"name": "Realtime", "description": "WebSocket channel for live notifications."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Multi-tenant requisition service. "
        "Manage organizations, items, requisitions and their approval workflow, "
        "with per-organization notifications delivered in-app, live and by email."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def options_handler(request: Request, call_next):  # type: ignore[no-untyped-def]
    if request.method == "OPTIONS":
        origin = request.headers.get("origin", "*")
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": origin,
                "Access-Control-Allow-Methods": "*",
                "Access-Control-Allow-Headers": "*",
                "Access-Control-Allow-Credentials": "true",
                "Access-Control-Max-Age": "86400",
            },
        )
    return await call_next(request)


app.include_router(
    organizations.router,
    prefix="/v1/organizations",
    tags=["Organizations"],
)
app.include_router(users.router, prefix="/v1/users", tags=["Users"])
app.include_router(item_codes.router, prefix="/v1/item_codes", tags=["Item Codes"])
app.include_router(categories.router, prefix="/v1/categories", tags=["Categories"])
app.include_router(items.router, prefix="/v1/items", tags=["Items"])
app.include_router(requisitions.router, prefix="/v1/requisitions", tags=["Requisitions"])
app.include_router(notifications.router, prefix="/v1/notifications", tags=["Notifications"])
app.include_router(email_jobs.router, prefix="/v1/email_jobs", tags=["Email Jobs"])
app.include_router(realtime.router, prefix="/v1/realtime", tags=["Realtime"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "status": "running",
    }
