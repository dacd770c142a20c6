"""Bird photo API layer - routes, schemas, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    BirdPhotosRequest,
    BirdPhotosResponse,
    ErrorResponse,
    HealthResponse,
    QueueStatsResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "BirdPhotosRequest",
    "BirdPhotosResponse",
    "ErrorResponse",
    "HealthResponse",
    "QueueStatsResponse",
]
