from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from freight_recon.routers import purchase_orders, bills_of_lading, invoices, matching, files
from freight_recon.config import settings
from freight_recon.errors import (
    DocumentNotFoundError,
    DuplicateDocumentError,
    FreightReconError,
    InvalidStatusTransitionError,
)
import logging
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

logger.info("="*60)
logger.info("Starting Freight Invoice Reconciliation API")
logger.info("="*60)
logger.info(f"OpenAI API Key configured: {bool(settings.openai_api_key)}")
logger.info(f"Comparison model: {settings.agent_model}")
logger.info(f"Fuzzy fallback enabled: {settings.fuzzy_fallback_enabled}")
logger.info("="*60)

# Tables are managed by alembic migrations

app = FastAPI(
    title="Freight Invoice Reconciliation API",
    description="3-way matching of purchase orders, bills of lading and carrier invoices",
    version="1.0.0"
)


def parse_cors_origins(origins_str: str) -> list:
    """Parse CORS origins string into a list."""
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


cors_origins = parse_cors_origins(settings.cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

app.include_router(purchase_orders.router)
app.include_router(bills_of_lading.router)
app.include_router(invoices.router)
app.include_router(matching.router)
app.include_router(files.router)


@app.get("/")
def root():
    return {"message": "Freight Invoice Reconciliation API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.exception_handler(FreightReconError)
async def domain_exception_handler(request: Request, exc: FreightReconError):
    """Domain errors that escape a router map onto client errors"""
    if isinstance(exc, DocumentNotFoundError):
        status_code = 404
    elif isinstance(exc, DuplicateDocumentError):
        status_code = 409
    elif isinstance(exc, InvalidStatusTransitionError):
        status_code = 400
    else:
        status_code = 500
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler so errors still come back as JSON"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {str(exc)}"},
    )
