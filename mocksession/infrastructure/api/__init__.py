"""Backend REST client."""

from .client import BackendClient, ApiRoutes, INTERVIEW_ROUTES, TRAINING_ROUTES, ROUTES_BY_MODE

__all__ = ["BackendClient", "ApiRoutes", "INTERVIEW_ROUTES", "TRAINING_ROUTES", "ROUTES_BY_MODE"]
