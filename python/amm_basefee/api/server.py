"""
AMM Base Fee API Server

FastAPI server exposing the base fee oracle, calibration and block replay.

Usage:
    # Development
    python -m amm_basefee.api.server

    # Production with uvicorn
    uvicorn amm_basefee.api.server:app --host 0.0.0.0 --port 8001
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
import logging
import time
import sys
import os
import traceback
from typing import Dict, Any

from .. import __version__
from ..core.base_fee_oracle import BaseFeeOracle
from .fee_api import router as fee_router, get_oracle
from .models import ErrorResponse, HealthCheckResponse

logger = logging.getLogger(__name__)

_server_start_time = time.time()


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logging for the server process."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build and initialize the oracle before serving requests."""
    logger.info("AMM base fee API starting up...")
    oracle = get_oracle()
    logger.info(f"Oracle state: {oracle}")
    yield
    logger.info("AMM base fee API shutting down")


app = FastAPI(
    title="AMM Base Fee API",
    description="REST API for the AMM-style EIP-1559 base fee oracle",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception in {request.method} {request.url}: {exc}")
    logger.error(traceback.format_exc())

    # Don't expose internal errors in production
    if os.getenv("ENVIRONMENT") == "production":
        error_message = "Internal server error"
        details = None
    else:
        error_message = str(exc)
        details = {"traceback": traceback.format_exc()}

    error_response = ErrorResponse(
        error="InternalServerError",
        message=error_message,
        details=details
    )

    return JSONResponse(status_code=500, content=error_response.model_dump())


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with their processing time."""
    start_time = time.time()
    logger.info(f"Request: {request.method} {request.url}")

    response = await call_next(request)
    process_time = time.time() - start_time

    logger.info(f"Response: {response.status_code} in {process_time:.3f}s")
    response.headers["X-Process-Time"] = str(process_time)
    return response


app.include_router(fee_router)


@app.get("/", response_model=Dict[str, Any])
async def root() -> Dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "service": "AMM Base Fee API",
        "version": __version__,
        "status": "operational",
        "uptime_seconds": time.time() - _server_start_time,
        "endpoints": {
            "fee_mechanism": "/api/fee/*",
            "health": "/health",
            "docs": "/docs"
        },
    }


@app.get("/health", response_model=HealthCheckResponse)
async def health_check(oracle: BaseFeeOracle = Depends(get_oracle)) -> HealthCheckResponse:
    """Health check: reports whether the oracle has been initialized."""
    return HealthCheckResponse(
        status="healthy" if oracle.initialized else "degraded",
        version=__version__,
        uptime_seconds=time.time() - _server_start_time,
        oracle_initialized=oracle.initialized,
    )


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="AMM Base Fee API Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8001, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    args = parser.parse_args()
    setup_logging()

    uvicorn.run(
        "amm_basefee.api.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
