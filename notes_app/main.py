from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notes_app.backend_gateway.outputs import configure, load_outputs
from notes_app.config import get_settings
from notes_app.services.session_registry import get_session_registry

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan: startup and shutdown events."""
    # Startup: one-time backend configuration for the whole process
    configure(load_outputs(settings))

    yield
    # Shutdown: sign out open sessions and close their HTTP clients
    await get_session_registry().close_all()


app = FastAPI(
    title="Notes App",
    description="Notes with image attachments on a managed backend",
    version="0.1.0",
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Router includes ---
from notes_app.api.auth import router as auth_router  # noqa: E402
from notes_app.api.notes import router as notes_router  # noqa: E402

app.include_router(auth_router, prefix="/api")
app.include_router(notes_router, prefix="/api")


@app.get("/api/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns a simple status response to verify the API is running.
    """
    return {"status": "ok"}
