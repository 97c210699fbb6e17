import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from records_api.config import APP_TITLE, CORS_ORIGINS, LOG_LEVEL
from records_api.database import DocumentStore, open_store
from records_api.errors import InvalidInput, NotFound, StoreUnavailable
from records_api.models.records import RESOURCES
from records_api.routers import reports
from records_api.routers.resources import build_router
from records_api.services.registry import ServiceRegistry
from records_api.services.validation import to_field_errors

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _validation_response(details: list[dict]) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "validation_error", "details": details})


async def invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
    return _validation_response([e.to_dict() for e in exc.errors])


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = to_field_errors(exc.errors(), skip_prefix="body")
    return _validation_response([e.to_dict() for e in errors])


async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "not_found"})


async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"error": "store_unavailable"})


async def unmatched_route_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "Not Found"})
    return await http_exception_handler(request, exc)


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


def create_app(store: DocumentStore | None = None) -> FastAPI:
    """Build the API.

    Passing a ``store`` wires it in immediately and leaves its lifecycle to
    the caller (tests do this). Without one, the lifespan opens the store
    named by the configuration and closes it on shutdown; if it cannot be
    opened the API keeps serving with no store.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s...", APP_TITLE)
        opened = None
        if store is None:
            try:
                opened = await open_store()
            except StoreUnavailable as exc:
                logger.warning("Failed to open document store, continuing without one: %s", exc)
            else:
                app.state.registry = ServiceRegistry(opened)
        yield
        if opened is not None:
            await opened.close()
        logger.info("%s shut down", APP_TITLE)

    app = FastAPI(
        title=APP_TITLE,
        description="A modular API for healthcare record management.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.registry = ServiceRegistry(store)

    app.middleware("http")(add_security_headers)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidInput, invalid_input_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(StoreUnavailable, store_unavailable_handler)
    app.add_exception_handler(StarletteHTTPException, unmatched_route_handler)

    for definition in RESOURCES:
        app.include_router(build_router(definition))
    app.include_router(reports.router)

    return app


app = create_app()
