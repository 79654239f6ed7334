# natours/main.py
import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from natours.config import settings
from natours.core.db import init_db, close_db
from natours.core.errors import install_process_handlers, register_exception_handlers
from natours.core.middleware import BodyLimitMiddleware, RequestLogMiddleware

from natours.api.v1.routers import reviews, tours, users

from natours.core.bootstrap import ensure_default_admin
logger = logging.getLogger("uvicorn.error")

app = FastAPI(title=settings.APP_NAME)

# CORS (with Cookie)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(BodyLimitMiddleware, max_bytes=settings.body_limit_bytes)
if not settings.is_production:
    app.add_middleware(RequestLogMiddleware)

register_exception_handlers(app)


@app.on_event("startup")
async def on_startup():
    # Faults outside a request take the process down
    install_process_handlers()
    await init_db()
    # Ensure there's a default admin account on first run
    await ensure_default_admin()
    logger.info("[natours] started in %s mode", settings.env)


@app.on_event("shutdown")
async def on_shutdown():
    await close_db()


# REST
app.include_router(tours.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(reviews.router, prefix="/api/v1")


@app.get("/healthz")
def healthz():
    return {"ok": True}


def run():
    uvicorn.run("natours.main:app", host=settings.host, port=settings.port, reload=not settings.is_production)


if __name__ == "__main__":
    run()
