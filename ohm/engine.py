"""
Engine Orchestration Module

This module provides the unified interface the HTTP layer talks to:
store query -> record sequence -> topology builder -> graph.

DESIGN PRINCIPLES:
==================
1. The store is injected, never reached through module globals
2. The topology builder never sees the store
3. Store failures and empty matches come back as explicit error states
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
import logging
import os

from .contracts.base import Error, ErrorCode, TrafficQueryResult
from .core.topology import TrafficGraph, build_traffic_graph
from .storage import TrafficStoreConfig, TrafficStoreEngine

logger = logging.getLogger(__name__)

NO_MATCH_MESSAGE = "No matching document found."


@dataclass
class BackendConfig:
    """Unified configuration for the topology backend."""
    storage: TrafficStoreConfig = None
    graph_record_limit: int = 100
    default_page_size: int = 10
    max_page_size: int = 1000
    cors_origins: Tuple[str, ...] = ("http://localhost:3001",)

    def __post_init__(self):
        self.storage = self.storage or TrafficStoreConfig()
        for name in ("graph_record_limit", "default_page_size", "max_page_size"):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be at least 1, got {value}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> BackendConfig:
        """Build a config from OHM_* environment variables."""
        environ = os.environ if environ is None else environ
        return cls(
            storage=TrafficStoreConfig.from_env(environ),
            graph_record_limit=int(environ.get("OHM_GRAPH_LIMIT", "100")),
            cors_origins=cors_origins_from_env(environ),
        )


def cors_origins_from_env(environ: Optional[Mapping[str, str]] = None) -> Tuple[str, ...]:
    """Parse the comma separated OHM_CORS_ORIGINS list."""
    environ = os.environ if environ is None else environ
    origins = environ.get("OHM_CORS_ORIGINS", "http://localhost:3001")
    return tuple(o.strip() for o in origins.split(",") if o.strip())


@dataclass(frozen=True)
class TrafficGraphResult:
    """
    IMMUTABLE outcome of a graph query.

    On success `graph` holds a freshly built topology; otherwise `error`
    says whether the store failed or nothing matched.
    """
    success: bool
    graph: Optional[TrafficGraph] = None
    error: Optional[Error] = None
    record_count: int = 0
    dropped: int = 0


class TrafficTopologyBackend:
    """
    Unified backend for the traffic topology service.

    Owns a TrafficStoreEngine and builds a new graph per request; no graph
    state outlives a call.
    """

    def __init__(
        self,
        config: Optional[BackendConfig] = None,
        store: Optional[TrafficStoreEngine] = None
    ):
        self._config = config or BackendConfig()
        self._store = store or TrafficStoreEngine(self._config.storage)

    @property
    def config(self) -> BackendConfig:
        return self._config

    @property
    def store(self) -> TrafficStoreEngine:
        return self._store

    def traffic_graph(self, host_pattern: Optional[str] = None) -> TrafficGraphResult:
        """Build the topology for up to `graph_record_limit` matching records."""
        result = self._store.find_for_graph(
            host_pattern, limit=self._config.graph_record_limit
        )
        if not result.success:
            return TrafficGraphResult(success=False, error=result.error)

        if not result.records:
            return TrafficGraphResult(
                success=False,
                error=Error(code=ErrorCode.NO_MATCH, message=NO_MATCH_MESSAGE)
                .with_context("host", host_pattern or ""),
                dropped=result.dropped,
            )

        graph = build_traffic_graph(result.records)
        return TrafficGraphResult(
            success=True,
            graph=graph,
            record_count=len(result.records),
            dropped=result.dropped,
        )

    def traffic_records(
        self,
        host_pattern: Optional[str] = None,
        page: int = 0,
        size: Optional[int] = None
    ) -> TrafficQueryResult:
        """One host-sorted page of raw records."""
        size = self._config.default_page_size if size is None else size
        return self._store.find_page(host_pattern, page=page, size=size)

    def is_healthy(self) -> bool:
        return self._store.ping()
