import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lostfound.config import CORS_ORIGINS, LOG_FILE, LOG_LEVEL
from lostfound.db.db import create_db_and_tables
from lostfound.routers import admin, claims, comments, found_items, lost_reports, notifications
from lostfound.services.errors import LostFoundError

handlers: list[logging.Handler] = [logging.StreamHandler()]
if LOG_FILE:
    handlers.append(logging.FileHandler(LOG_FILE))

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    handlers=handlers,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("Database tables ready")
    yield


app = FastAPI(title="Campus Lost & Found API", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LostFoundError)
async def lostfound_error_handler(request: Request, exc: LostFoundError):
    content = {"detail": exc.detail}
    if exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content))


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Same shape as the form validator: 400 with field-level detail
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


# Register routers
app.include_router(lost_reports.router, prefix="/lost", tags=["Lost Reports"])
app.include_router(found_items.router, prefix="/found", tags=["Found Items"])
app.include_router(claims.router, prefix="/interests", tags=["Claims"])
app.include_router(comments.router, prefix="/comments", tags=["Comments"])
app.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


@app.get("/")
def root():
    return {"status": "ok"}
