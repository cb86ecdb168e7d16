import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from projectpush.core.config import settings
from projectpush.routers import notifications

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

OPENAPI_TAGS = [
    {
        "name": "Notifications",
        "description": "Register push tokens, manage preferences and deliver notifications.",
    },
]

app = FastAPI(
    title=settings.APP_NAME,
    debug=settings.DEBUG,
    version=settings.version,
    description=(
        "Push notification delivery for the project management app. "
        "Registers device tokens, applies per-user delivery preferences and "
        "dispatches notifications through the push gateway."
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

app.include_router(
    notifications.router,
    prefix="/v1/notifications",
    tags=["Notifications"],
)


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }
