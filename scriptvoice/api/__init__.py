"""HTTP boundary: FastAPI app factory, request schemas, and response envelopes."""

from .app import ENDPOINT_CATALOGUE, create_app

__all__ = ["ENDPOINT_CATALOGUE", "create_app"]
