"""Plain-text and redirect routes."""

from fastapi import APIRouter, Request

from ..pipeline import Pipeline
from ..stages import (
    assign_session,
    read_body,
    decode_plain_url,
    create_link,
    compress,
    send_plain_text,
    resolve_link,
    send_redirect,
    check_store,
    send_empty,
)

router = APIRouter()

SHORTEN_PLAIN = Pipeline("shorten_plain").then(
    assign_session,
    read_body,
    decode_plain_url,
    create_link,
    compress,
    send_plain_text,
)

REDIRECT = Pipeline("redirect").then(resolve_link, send_redirect)

PING = Pipeline("ping").then(check_store, send_empty)


@router.get("/ping", include_in_schema=False)
async def ping(request: Request):
    """200 when the link store is reachable, 500 otherwise."""
    return await PING.run(request)


@router.post("/", status_code=201, include_in_schema=False)
async def shorten_plain(request: Request):
    """Shorten the URL sent as the raw request body."""
    return await SHORTEN_PLAIN.run(request)


@router.get("/{key}", status_code=307, include_in_schema=False)
async def redirect_to_url(request: Request):
    """Redirect to the original URL."""
    return await REDIRECT.run(request)
