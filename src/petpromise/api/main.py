import logging
from contextlib import asynccontextmanager

from botocore.exceptions import ClientError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from mangum import Mangum
from starlette.middleware.base import BaseHTTPMiddleware

from petpromise.api import routers
from petpromise.core.config import get_settings
from petpromise.core.dependencies import Container, build_container
from petpromise.core.errors import InternalError, PetPromiseError
from petpromise.core.logging_config import configure_logging

logger = logging.getLogger(__name__)

ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS, PATCH"
ALLOWED_HEADERS = "Content-Type, Authorization, X-Amz-Date, X-Api-Key, X-Amz-Security-Token"


# Custom middleware to add CORS headers to ALL responses (for API Gateway)
class CORSHeaderMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
        return response


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PetPromiseError)
    async def handle_domain_error(request: Request, exc: PetPromiseError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(ClientError)
    async def handle_store_error(request: Request, exc: ClientError):
        logger.error(f"Store failure on {request.method}: {exc}", extra={"path": request.url.path})
        error = InternalError()
        return JSONResponse(status_code=error.status_code, content={"message": error.message})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Invalid request: {location} {first.get('msg', '')}".strip()
        return JSONResponse(status_code=400, content={"message": message})


def create_app(container: Container | None = None) -> FastAPI:
    """
    Build the API. Without an explicit container the store handles are
    acquired from settings when the app starts and released on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if container is None:
            settings = get_settings()
            configure_logging(settings.LOG_LEVEL)
            app.state.container = build_container(settings)
        yield
        if container is None:
            logger.info("Releasing store handles")
            app.state.container = None

    app = FastAPI(title="PetPromise API", lifespan=lifespan)
    if container is not None:
        app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CORSHeaderMiddleware)
    register_exception_handlers(app)

    # Handle OPTIONS requests explicitly for API Gateway
    @app.options("/{full_path:path}")
    async def options_handler(request: Request, full_path: str):
        return JSONResponse(
            content={},
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": ALLOWED_METHODS,
                "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            }
        )

    @app.get("/")
    def read_root():
        return {"message": "petpromise is running"}

    app.include_router(routers.router)
    return app


app = create_app()

handler = Mangum(app)
