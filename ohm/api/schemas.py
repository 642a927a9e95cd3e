"""
Response schemas for the topology API.

Field names mirror what force-graph frontends expect: nodes carry an `id`,
links carry `source` and `target`.
"""
from typing import List, Optional

from pydantic import BaseModel


class ResponseNode(BaseModel):
    id: str


class ResponseLink(BaseModel):
    source: str
    target: str


class GraphResponse(BaseModel):
    nodes: List[ResponseNode]
    links: List[ResponseLink]


class TrafficRecordResponse(BaseModel):
    method: Optional[str] = None
    host: Optional[str] = None
    path: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    message: str


class ErrorResponse(BaseModel):
    """Envelope for every non-2xx response."""
    message: str
