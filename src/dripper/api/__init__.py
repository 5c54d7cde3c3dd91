"""HTTP drip API for Dripper."""

from .routes import BadRequest, parse_external_request, parse_internal_request, register_routes

__all__ = [
    "BadRequest",
    "parse_external_request",
    "parse_internal_request",
    "register_routes",
]
