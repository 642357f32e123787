"""Test utilities for flare applications.

    from flare.testing import TestClient
"""

from flare.testing.client import TestClient

__all__ = ["TestClient"]
