"""Shared type aliases used across flare modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Route handler: called as handler(bound_params, request), sync or async
Handler: TypeAlias = Callable[[dict[str, str], Any], Any]

# Error handler: receives (request, error?) and returns a response value
ErrorHandler: TypeAlias = Callable[..., Any]
