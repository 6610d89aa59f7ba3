import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import ReviewEngineError
from app.core.logging import request_id_var, setup_logging

from app.api.health import router as health_router
from app.api.me import router as me_router
from app.api.root import router as root_router
from app.api.cycles import router as cycles_router
from app.api.assignments import router as assignments_router
from app.api.forms import router as forms_router
from app.api.notifications import router as notifications_router
from app.api.stats import router as stats_router
from app.api.audit import router as audit_router

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Performance Review Engine")

# CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = request_id_var.set(req_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = req_id
    return response


@app.exception_handler(ReviewEngineError)
async def review_engine_error_handler(request: Request, exc: ReviewEngineError):
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        exc.message,
        extra={"code": exc.error_code, "status_code": exc.status_code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


app.include_router(root_router)
app.include_router(health_router)
app.include_router(me_router)
app.include_router(cycles_router)
app.include_router(assignments_router)
app.include_router(forms_router)
app.include_router(notifications_router)
app.include_router(stats_router)
app.include_router(audit_router)
