"""
FastAPI Application

Thin handlers over the services: each route resolves the caller,
calls one service method and shapes the JSON. Error responses all
have the form {"error": "..."}.

Domain exceptions map to HTTP statuses here, in one place:
    invalid input / date range  -> 400
    unknown budget or category  -> 404
    anything else               -> 500 (logged)
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pocketbook import __version__
from pocketbook.audit import get_logger
from pocketbook.api.routes import (
    accounts,
    budgets,
    categories,
    invitations,
    subscription,
    summary,
    transactions,
)
from pocketbook.budgeting import AmountParseError, BudgetNotFoundError, CategoryNotFoundError
from pocketbook.models.audit import AuditEventBuilder
from pocketbook.orchestrator import AppComponents, create_app_components
from pocketbook.reports import InvalidDateRangeError


logger = get_logger(__name__)


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_invalid(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return _error(400, "Invalid request", details=details)

    @app.exception_handler(AmountParseError)
    @app.exception_handler(InvalidDateRangeError)
    async def bad_input(request: Request, exc: ValueError):
        return _error(400, str(exc))

    @app.exception_handler(BudgetNotFoundError)
    @app.exception_handler(CategoryNotFoundError)
    async def not_found(request: Request, exc: Exception):
        return _error(404, str(exc))

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, error=str(exc))
        components: AppComponents = request.app.state.components
        await components.audit_logger.log(AuditEventBuilder.system_error(
            error_type=type(exc).__name__,
            error_message=str(exc),
            details={"path": request.url.path, "method": request.method},
        ))
        return _error(500, "Internal server error")


def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """
    Build the API.

    Args:
        components: Pre-built components (tests pass in-memory ones).
                    Built from settings when None.
    """
    app = FastAPI(title="Pocketbook API", version=__version__)
    app.state.components = components or create_app_components()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    app.include_router(summary.router)
    app.include_router(budgets.router)
    app.include_router(subscription.router)
    app.include_router(invitations.router)
    app.include_router(accounts.router)
    app.include_router(categories.router)
    app.include_router(transactions.router)

    @app.get("/")
    async def read_root():
        return {"message": "Pocketbook API is running", "version": __version__}

    return app
