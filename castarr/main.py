from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .core.config import settings
from .api.deps import get_companion_service
from .api.routes import auth, metadata, server, sessions
from .api.routes import settings as settings_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Request URLs carry the token; keep httpx below INFO
logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    companion = get_companion_service()

    # Start background sessions polling
    await companion.start()
    logging.info("Started companion service")

    yield

    await companion.stop()
    logging.info("Stopped companion service")

app = FastAPI(
    title=settings.app_name,
    description="Now-playing companion for Plex Media Server",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(sessions.router, prefix="/api", tags=["Sessions"])
app.include_router(metadata.router, prefix="/api", tags=["Metadata"])
app.include_router(settings_router.router, prefix="/api/settings", tags=["Settings"])
app.include_router(server.router, prefix="/api/server", tags=["Server"])


@app.get("/")
async def root():
    return {"message": f"{settings.app_name} API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
