"""Freshware CRM web application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from app.auth.client import create_auth_client
from app.auth.guard import SessionGuard
from app.core.config import settings
from app.core.database import create_db_and_tables
from app.core.policy import AccessDenied
from app.routes import auth, dashboard, webhooks

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=settings.log_file or None,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    logger.info("Starting Freshware application")
    create_db_and_tables()
    yield
    logger.info("Freshware application shut down")


app = FastAPI(
    title=settings.app_name,
    description="Freshware CRM: session-guarded dashboard and per-tenant booking webhooks",
    version="0.1.0",
    lifespan=lifespan,
)

# Each request builds its own auth client from this factory
app.state.auth_client_factory = create_auth_client

app.add_middleware(SessionGuard, settings=settings)

# Configure CORS for external access
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(webhooks.router)


@app.exception_handler(AccessDenied)
async def access_denied_handler(request: Request, exc: AccessDenied):
    """Send users whose role lacks access back to the dashboard home."""
    return RedirectResponse("/dashboard", status_code=303)


@app.get("/")
async def root(request: Request):
    """Redirect root to the dashboard."""
    rp = request.scope.get("root_path", "")
    return RedirectResponse(f"{rp}/dashboard")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
