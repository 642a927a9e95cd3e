"""
OHM Traffic Topology: API Server
================================

Read API over recorded HTTP traffic.

Endpoints:
- GET /healthcheck      -> Store reachability
- GET /traffic/graph    -> Domain/path/method topology for matching hosts
- GET /traffic/records  -> Host-sorted page of raw {method, host, path}

Every non-2xx response body is `{"message": str}`.

Usage:
    uvicorn ohm.api.server:app --port 3000
"""
from contextlib import asynccontextmanager
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..contracts.base import ErrorCode
from ..engine import BackendConfig, TrafficTopologyBackend, cors_origins_from_env
from .mapper import map_graph_to_dto, map_records_to_dto
from .schemas import (
    ErrorResponse, GraphResponse, HealthResponse, TrafficRecordResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_backend(request: Request) -> TrafficTopologyBackend:
    backend = request.app.state.backend
    if backend is None:
        raise HTTPException(status_code=503, detail="Backend not initialized")
    return backend


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/healthcheck",
    response_model=HealthResponse,
    responses={503: {"model": ErrorResponse}},
)
def healthcheck(backend: TrafficTopologyBackend = Depends(get_backend)):
    """Store reachability check."""
    if not backend.is_healthy():
        raise HTTPException(status_code=503, detail="Database is down")
    return {"status": "healthy", "message": "Database is healthy"}


@router.get(
    "/traffic/graph",
    response_model=GraphResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def traffic_graph(
    host: Optional[str] = None,
    backend: TrafficTopologyBackend = Depends(get_backend),
):
    """
    Topology of the traffic whose host matches `host`
    (case-insensitive regular expression; omitted matches everything).
    """
    result = backend.traffic_graph(host)
    if not result.success:
        if result.error.code is ErrorCode.NO_MATCH:
            raise HTTPException(status_code=404, detail=result.error.message)
        raise HTTPException(status_code=500, detail=result.error.message)

    return map_graph_to_dto(result.graph)


@router.get(
    "/traffic/records",
    response_model=List[TrafficRecordResponse],
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def traffic_records(
    host: Optional[str] = None,
    page: int = Query(0, ge=0),
    size: Optional[int] = Query(None, ge=1),
    backend: TrafficTopologyBackend = Depends(get_backend),
):
    """Page of raw records sorted by host (`skip = page * size`)."""
    if size is not None and size > backend.config.max_page_size:
        raise HTTPException(
            status_code=422,
            detail=f"size must be at most {backend.config.max_page_size}",
        )

    result = backend.traffic_records(host, page=page, size=size)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error.message)

    return map_records_to_dto(result.records)


# =============================================================================
# ERROR ENVELOPES
# =============================================================================

async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=422, content={"message": problems})


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    backend: Optional[TrafficTopologyBackend] = None,
    config: Optional[BackendConfig] = None,
) -> FastAPI:
    """
    Build the API application.

    An injected `backend` is used as-is. Without one, the lifespan builds a
    backend from `config`, or from the environment on startup, so a bad
    OHM_* value surfaces when the server starts rather than at import.
    """
    if backend is not None:
        config = backend.config
    cors_origins = config.cors_origins if config is not None else cors_origins_from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.backend is None
        if owned:
            resolved = config or BackendConfig.from_env()
            logger.info(
                "Initializing traffic store (backend=%s)", resolved.storage.backend_type
            )
            app.state.backend = TrafficTopologyBackend(resolved)
        yield
        if owned:
            logger.info("Shutting down traffic store")
            app.state.backend = None

    app = FastAPI(
        title="OHM Traffic Topology API",
        version="0.1.0",
        description="Domain, path and method topology of recorded HTTP traffic",
        lifespan=lifespan,
    )
    app.state.backend = backend

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)
    return app


app = create_app()
