import logging
from datetime import datetime, timezone
from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from mediscan.config import settings
from mediscan.database import engine
from mediscan.errors import AppError, LoginRedirect, UnauthorizedError
from mediscan.gate import Outcome, extract_session_token
from mediscan.models import medical_report, user  # noqa: F401
from mediscan.routers import auth, pages, reports
from mediscan.routers.deps import gate, open_auth_repository
from mediscan.services.auth import Authenticator

app = FastAPI(title="MediScan API", version="0.1.0")
app.state.auth_repository_factory = open_auth_repository
logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"statusCode": status_code, "message": message, "error": error},
    )


@app.middleware("http")
async def authorization_gate(request: Request, call_next):
    # Runs before routing, so unknown paths and built-in docs routes are covered too.
    def resolve(token: str):
        with request.app.state.auth_repository_factory() as repository:
            return Authenticator(repository).current_user(token)

    token = extract_session_token(request, settings.session_cookie_name)
    decision = await run_in_threadpool(gate.decide, request.url.path, token, resolve)

    if decision.outcome is Outcome.UNAUTHORIZED:
        return _error_response(401, decision.reason, "Unauthorized")
    if decision.outcome is Outcome.REDIRECT_TO_LOGIN:
        return RedirectResponse(url=gate.login_path, status_code=307)
    if decision.outcome is Outcome.INTERNAL_ERROR:
        return _error_response(500, decision.reason, "InternalServerError")
    return await call_next(request)


# Added after the gate so CORS wraps it and preflight requests are answered first.
allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _assert_database_at_head() -> None:
    project_root = Path(__file__).resolve().parent.parent
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    script = ScriptDirectory.from_config(alembic_cfg)
    expected_heads = set(script.get_heads())

    with engine.connect() as connection:
        context = MigrationContext.configure(connection)
        current_heads = set(context.get_current_heads())

    if current_heads != expected_heads:
        raise RuntimeError(
            "Database schema is not at Alembic head. "
            "Run `alembic upgrade head` before starting the API. "
            f"Current revisions: {sorted(current_heads) or ['<none>']}, "
            f"expected: {sorted(expected_heads)}."
        )


@app.on_event("startup")
def startup_event():
    _assert_database_at_head()


@app.get("/health")
def health():
    return {
        "status": "ok",
        "service": "mediscan",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _error_name(status_code: int) -> str:
    if status_code == 400:
        return "BadRequest"
    if status_code == 401:
        return "Unauthorized"
    if status_code == 403:
        return "Forbidden"
    if status_code == 404:
        return "NotFound"
    if status_code == 409:
        return "Conflict"
    if status_code == 422:
        return "ValidationError"
    if status_code >= 500:
        return "InternalServerError"
    return "HTTPError"


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if isinstance(exc, UnauthorizedError) and not gate.is_api(request.url.path):
        location = exc.location if isinstance(exc, LoginRedirect) else gate.login_path
        return RedirectResponse(url=location, status_code=307)
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message, exc.error)


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return _error_response(exc.status_code, str(exc.detail) if exc.detail else "Request failed", _error_name(exc.status_code))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "statusCode": 400,
            "message": "Invalid request payload",
            "error": "ValidationError",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(_: Request, exc: Exception):
    logger.exception("Unhandled server error: %s", exc)
    return _error_response(500, "An unexpected error occurred", "InternalServerError")


app.include_router(pages.router)
app.include_router(auth.router)
app.include_router(reports.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("mediscan.main:app", host=settings.app_host, port=settings.app_port)
