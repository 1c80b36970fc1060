# server/main.py

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from api import auth, cities, health, insight
from config import Settings
from core.errors import DashboardError
from core.logging_config import setup_logging
from core.stores import Store, build_store


logger = logging.getLogger(__name__)

API_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {first.get('msg')}" if field else str(first.get("msg"))


def create_app(settings: Settings | None = None, store: Store | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)

    # Fail before serving anything if production has no signing secret
    settings.resolve_secret()
    store = store or build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Initializing %s store", store.backend)
        store.init()
        yield
        store.close()

    app = FastAPI(title="Weather Dashboard API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info("%s %s -> %d", request.method, request.url.path, response.status_code)
        return response

    @app.exception_handler(DashboardError)
    async def dashboard_error_handler(request: Request, exc: DashboardError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    app.include_router(auth.router)
    app.include_router(cities.router)
    app.include_router(insight.router)
    app.include_router(health.router)

    # Unknown /api routes must not fall through to the static UI
    @app.api_route("/api/{path:path}", methods=API_METHODS, include_in_schema=False)
    async def api_not_found(path: str, request: Request):
        return JSONResponse(
            status_code=404,
            content={"error": f"API route {request.method} {request.url.path} not found"},
        )

    static_dir = Path(settings.static_dir)
    if settings.is_production and static_dir.is_dir():
        logger.info("Serving static UI from %s", static_dir.resolve())
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="ui")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=3000)
