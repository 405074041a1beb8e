# main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from motor.motor_asyncio import AsyncIOMotorClient
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from .config import settings
from .errors import StudentError
from .responses import error_response
from .routes import students
from .store import StoreConfig, StudentStore

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(store: Optional[StudentStore] = None) -> FastAPI:
    """
    Build the API. When no store is given, one is opened against MONGODB_URI
    for the lifetime of the app.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        if store is None:
            client = AsyncIOMotorClient(settings.MONGODB_URI)
            app.state.store = StudentStore(
                client[settings.MONGODB_DB],
                StoreConfig(collection=settings.STUDENTS_COLLECTION),
            )
            logger.info(f"MongoDB client opened for database {settings.MONGODB_DB}")
        else:
            app.state.store = store
        await app.state.store.ensure_indexes()
        yield
        if client:
            client.close()
            logger.info("MongoDB client closed")

    app = FastAPI(title=settings.PROJECT_NAME, version="1.0.0", lifespan=lifespan)
    if store is not None:
        app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(students.router)

    @app.get("/api/health")
    async def health_check():
        return {
            "success": True,
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.exception_handler(StudentError)
    async def student_error_handler(request: Request, exc: StudentError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
        return error_response(exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        logger.warning(f"{request.method} {request.url.path} invalid request: {details}")
        return error_response(f"Invalid request: {details}", 400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail), exc.status_code)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Server error: {exc}", exc_info=exc)
        return error_response(f"Internal server error: {exc}", 500)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("student_records.main:app", host=settings.HOST, port=settings.PORT, reload=settings.RELOAD)
