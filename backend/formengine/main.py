"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from formengine.config import get_settings
from formengine.exceptions import (
    FormEngineError,
    ValidationError,
    NotFoundError,
    InvalidStateError,
    ImmutableFieldError,
    DependencyError,
)
from formengine.routers import templates, mappings, forms, cases, audit

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Error kind -> HTTP status
ERROR_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    InvalidStateError: 409,
    ImmutableFieldError: 409,
    DependencyError: 502,
}

app = FastAPI(
    title="Immigration Form Engine",
    description="Versioned form templates, government portal field mappings, and validated submission generation",
    version="1.0.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FormEngineError)
async def form_engine_error_handler(request: Request, exc: FormEngineError):
    """Report engine errors with their kind so callers can act on them."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 400)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Include routers
app.include_router(templates.router, prefix="/api/templates", tags=["Templates"])
app.include_router(mappings.router, prefix="/api/mappings", tags=["Field Mappings"])
app.include_router(forms.router, prefix="/api/forms", tags=["Form Generation"])
app.include_router(cases.router, prefix="/api/cases", tags=["Cases"])
app.include_router(audit.router, prefix="/api/audit", tags=["Audit Trail"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "immigration-form-engine"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Immigration Form Engine API",
        "docs": "/docs",
        "health": "/health",
    }
