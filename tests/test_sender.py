"""Tests for flare.server.sender response emission rules."""

from flare.http.cookies import SetCookie
from flare.http.response import Response
from flare.server.sender import send_response


async def _send(response: Response, *, head: bool = False) -> list[dict]:
    messages: list[dict] = []

    async def send(message: dict) -> None:
        messages.append(message)

    await send_response(response, send, head=head)
    return messages


class TestSendResponse:
    async def test_200_preserves_body(self) -> None:
        messages = await _send(Response("ok"))
        headers = dict(messages[0]["headers"])
        assert messages[0]["status"] == 200
        assert headers[b"content-length"] == b"2"
        assert headers[b"content-type"] == b"text/plain; charset=utf-8"
        assert messages[1]["body"] == b"ok"

    async def test_204_drops_body(self) -> None:
        messages = await _send(Response("unexpected-body").with_status(204))
        assert dict(messages[0]["headers"])[b"content-length"] == b"0"
        assert messages[1]["body"] == b""

    async def test_head_keeps_length_without_body(self) -> None:
        messages = await _send(Response("hello"), head=True)
        assert dict(messages[0]["headers"])[b"content-length"] == b"5"
        assert messages[1]["body"] == b""

    async def test_headers_lowercased(self) -> None:
        messages = await _send(Response("x").with_header("Allow", "GET"))
        assert (b"allow", b"GET") in messages[0]["headers"]

    async def test_set_cookie_emitted(self) -> None:
        response = Response("x").with_set_cookie(SetCookie(name="sid", value="abc"))
        messages = await _send(response)
        cookies = [v for k, v in messages[0]["headers"] if k == b"set-cookie"]
        assert cookies == [b"sid=abc; Path=/; HttpOnly; SameSite=lax"]
