"""
Identity Manager FastAPI Main Application
Entry point for the identity registry service.
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from identity_manager import __version__
from identity_manager.config import config
from identity_manager.errors import RegistryError
from identity_manager.routes import abi, identities
from identity_manager.services import RegistryService, get_registry_service

logging.basicConfig(level=config.API_LOG_LEVEL.upper())
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Identity Manager",
    description="Identity registry with one record per account, backed by the IdentityManager contract",
    version=__version__,
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(identities.router, prefix="/api", tags=["Identities"])
app.include_router(abi.router, prefix="/api", tags=["ABI"])


@app.exception_handler(RegistryError)
async def registry_error_handler(request: Request, exc: RegistryError):
    """Turn rejected registry operations into JSON errors."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.on_event("startup")
async def startup_event():
    """Build the registry backend on startup."""
    registry = get_registry_service()
    if not registry.validity_admins:
        logger.warning("VALIDITY_ADMINS is empty: any account may set identity validity")


@app.get("/api/health")
def health_check(registry: RegistryService = Depends(get_registry_service)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "Identity Manager",
        "version": __version__,
        "registry": registry.get_stats()
    }


if __name__ == "__main__":
    uvicorn.run(
        "identity_manager.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        log_level=config.API_LOG_LEVEL,
        reload=True
    )
