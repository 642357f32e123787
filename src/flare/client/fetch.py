"""View data over HTTP with ``httpx``.

The flow engine hands each settled view to a loader; ``HttpViewLoader``
fetches the view's path from the server with the session token
attached and returns the decoded JSON.
"""

from typing import Any

import httpx

from flare.client.authentication import CredentialCache
from flare.errors import ViewDataError


def extract_json(response: httpx.Response) -> Any:
    """Return the JSON body of a successful response.

    Raises ``ViewDataError`` for non-2xx statuses and bodies that are
    not JSON.
    """
    if not response.is_success:
        msg = f"{response.request.method} {response.request.url} returned {response.status_code}"
        raise ViewDataError(msg)
    try:
        return response.json()
    except ValueError as exc:
        msg = f"{response.request.method} {response.request.url} did not return JSON"
        raise ViewDataError(msg) from exc


class HttpViewLoader:
    """Loads view data with a shared ``httpx.AsyncClient``.

    Usage::

        async with httpx.AsyncClient(base_url="https://api.example.com") as http:
            loader = HttpViewLoader(http, credentials, path_prefix="/api")
            engine = FlowEngine(views, history, credentials, loader=loader)
    """

    __slots__ = ("_client", "_credentials", "_path_prefix", "_token_header")

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: CredentialCache,
        *,
        token_header: str = "X-Flare-Token",
        path_prefix: str = "",
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._token_header = token_header
        self._path_prefix = path_prefix.rstrip("/")

    async def load(self, view_id: str, params: dict[str, str], path: str) -> Any:
        headers: dict[str, str] = {}
        token = self._credentials.session_token()
        if token:
            headers[self._token_header] = token

        try:
            response = await self._client.get(self._path_prefix + path, headers=headers)
        except httpx.HTTPError as exc:
            msg = f"Loading data for view {view_id!r} failed: {exc}"
            raise ViewDataError(msg) from exc
        return extract_json(response)
