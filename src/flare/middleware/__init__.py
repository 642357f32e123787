"""Middleware: ``async (request, next) -> Response`` callables.

Middleware wraps the dispatcher, so it runs for every request,
including ones that end in 404, 405, 401 or 403.
"""

from flare.middleware.protocol import Middleware, Next

__all__ = ["Middleware", "Next"]
