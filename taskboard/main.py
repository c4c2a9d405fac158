# main.py - Taskboard API
# Features:
# - Request ids on every response
# - Basic security headers
# - Domain errors mapped to JSON responses
# - Health check with DB verification
# - Agent actor resolved once at startup

import os
import uuid
import time
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text

from taskboard.database import init_db, close_db, get_db_context, get_db_session
from taskboard.errors import TaskBoardError, ValidationFailed
from taskboard.services.agent_tools import resolve_agent_actor

# Logging
logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s %(message)s",
)
logger = logging.getLogger("taskboard")

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting Taskboard v{VERSION}...")
    await init_db()
    async with get_db_context() as db:
        app.state.agent_actor_id = await resolve_agent_actor(db, os.getenv("AGENT_ACTOR_ID"))
    yield
    logger.info("Shutting down Taskboard...")
    await close_db()


app = FastAPI(
    title="Taskboard",
    description="Multi-tenant Kanban boards: organizations, boards, lists, cards and comments",
    version=VERSION,
    lifespan=lifespan,
)

# ============================================================
# CORS
# ============================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID", "X-Agent-API-Key"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Tag each request with an id and log its outcome"""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start = time.perf_counter()
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"

    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({time.perf_counter() - start:.3f}s) [rid={request_id[:8]}]"
    )
    return response


# ============================================================
# ERRORS
# ============================================================

def _error_body(request: Request, detail, code: str) -> dict:
    return {"detail": detail, "code": code, "request_id": getattr(request.state, "request_id", None)}


@app.exception_handler(TaskBoardError)
async def taskboard_exception_handler(request: Request, exc: TaskBoardError):
    if exc.status_code == 403:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(request, exc.message, exc.code))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Same envelope as ValidationFailed raised by the services
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "msg": str(err.get("msg", ""))}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=422, content=_error_body(request, errors, ValidationFailed.code))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content=_error_body(request, "Internal server error", "internal_error"))


# ============================================================
# ROUTERS
# ============================================================

from taskboard.routers import agent, auth, boards, cards, comments, lists, organizations  # noqa: E402

app.include_router(auth.router)
app.include_router(organizations.router)
app.include_router(boards.router)
app.include_router(lists.router)
app.include_router(cards.router)
app.include_router(comments.router)
app.include_router(agent.router)


# ============================================================
# HEALTH
# ============================================================

@app.get("/health")
async def health_check():
    """Health check with database connectivity verification"""
    db_status = "unknown"
    try:
        async for db in get_db_session():
            await db.execute(text("SELECT 1"))
            db_status = "connected"
            break
    except Exception as e:
        db_status = f"error: {str(e)[:100]}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "version": VERSION,
        "environment": os.getenv("ENVIRONMENT", "development"),
        "database": db_status,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "taskboard.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=os.getenv("ENVIRONMENT") != "production",
    )
