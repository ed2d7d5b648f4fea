import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

import auth
import catalog
import orders
from config import Settings
from database import connect, ensure_indexes
from errors import StoreError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    os.makedirs(app.state.settings.upload_dir, exist_ok=True)
    ensure_indexes(app.state.db)
    yield


# --------- Error handlers ---------

async def store_error_handler(request: Request, exc: StoreError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path,
                       type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail},
                        headers=getattr(exc, "headers", None))


def _describe(errors) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "Invalid request: " + "; ".join(parts)


async def validation_error_handler(request: Request, exc):
    message = _describe(exc.errors())
    logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"message": message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# --------- App factory ---------

def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(title="Hypermart API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db if db is not None else connect(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth.router, prefix=settings.api_prefix)
    app.include_router(catalog.router, prefix=settings.api_prefix)
    app.include_router(orders.router, prefix=settings.api_prefix)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

    # --------- Basic Routes ---------

    @app.get("/")
    def root():
        return {"message": "Hypermart API running"}

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/test")
    def test_database():
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_name": None,
            "connection_status": "Not Connected",
            "collections": [],
        }
        try:
            database = app.state.db
            response["database_name"] = database.name
            response["collections"] = database.list_collection_names()[:10]
            response["connection_status"] = "Connected"
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            response["database"] = f"❌ Error: {str(e)[:80]}"
        return response

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=app.state.settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
