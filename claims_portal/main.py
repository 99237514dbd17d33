# claims_portal/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from claims_portal.core.auth import accepts_json
from claims_portal.core.config import get_settings
from claims_portal.core.exceptions import ClaimsServiceError, Forbidden, NotAuthenticated
from claims_portal.core.tokens import TokenService
from claims_portal.database import create_db_and_tables
from claims_portal.repositories.refresh_token_repo import RefreshTokenRepository
from claims_portal.repositories.user_repo import UserRepository
from claims_portal.services.auth_service import AuthService
from claims_portal.services.claim_service import ClaimService
from claims_portal.services.clickup_client import ClickUpClient
from claims_portal.services.credential_store import CredentialStore

# Routers
from claims_portal.routers.auth import router as auth_router, LOGIN_URL
from claims_portal.routers.claims import router as claims_router
from claims_portal.routers.users import router as users_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL.upper())
logger = logging.getLogger("uvicorn")

_ACCESS_DENIED_PAGE = """<!doctype html>
<html><head><title>Access Denied</title></head>
<body><h1>Access Denied</h1><p>Admin privileges required</p></body></html>"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Create tables.
      - Build the shared services (token service, credential store,
        claims client) and put them on app.state.

    Shutdown:
      - Close the ClickUp HTTP client.
    """
    logger.info("Startup: preparing database...")
    try:
        create_db_and_tables()
        logger.info("Startup: DB connection OK, tables verified.")
    except Exception as e:
        logger.error(f"Startup: DB connection FAILED: {e}")
        raise

    tokens = TokenService(settings)
    store = CredentialStore(UserRepository(), RefreshTokenRepository(), settings)
    app.state.token_service = tokens
    app.state.credential_store = store
    app.state.auth_service = AuthService(store, tokens)

    clickup = None
    if settings.CLICKUP_API_KEY:
        clickup = ClickUpClient.from_settings(settings)
        app.state.claim_service = ClaimService(clickup)
    else:
        logger.warning("Startup: CLICKUP_API_KEY not set, claim routes are disabled.")
        app.state.claim_service = None

    yield

    if clickup is not None:
        clickup.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# --- Middleware ---

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Legacy cookie session (request.session), read as an auth fallback
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    https_only=settings.is_production,
    same_site="lax",
)


# --- Error handling ---


@app.exception_handler(NotAuthenticated)
async def not_authenticated_handler(request: Request, exc: NotAuthenticated):
    if accepts_json(request):
        return JSONResponse({"error": exc.message}, status_code=status.HTTP_401_UNAUTHORIZED)
    return RedirectResponse(LOGIN_URL, status_code=status.HTTP_303_SEE_OTHER)


@app.exception_handler(Forbidden)
async def forbidden_handler(request: Request, exc: Forbidden):
    if accepts_json(request):
        return JSONResponse({"error": exc.message}, status_code=status.HTTP_403_FORBIDDEN)
    return HTMLResponse(_ACCESS_DENIED_PAGE, status_code=status.HTTP_403_FORBIDDEN)


@app.exception_handler(ClaimsServiceError)
async def claims_service_handler(request: Request, exc: ClaimsServiceError):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse({"error": "Claim not found"}, status_code=status.HTTP_404_NOT_FOUND)
    return JSONResponse({"error": exc.message}, status_code=status.HTTP_502_BAD_GATEWAY)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"error": "Invalid request", "details": jsonable_errors(exc)},
        status_code=422,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = {"error": "Internal server error"}
    if not settings.is_production:
        body["message"] = str(exc)
    return JSONResponse(body, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]


# --- Routes ---

app.include_router(auth_router)
app.include_router(claims_router)
app.include_router(users_router)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "claims-portal"}
