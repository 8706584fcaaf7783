"""API routes implementation."""

from fastapi import APIRouter, Request

from ..pipeline import Pipeline
from ..stages import (
    assign_session,
    read_body,
    decode_shorten_request,
    decode_batch_request,
    decode_delete_request,
    create_link,
    list_user_links,
    shorten_batch,
    delete_links,
    encode_result,
    encode_user_links,
    encode_batch_result,
    compress,
    send_json,
    send_empty,
)

router = APIRouter()

SHORTEN_JSON = Pipeline("shorten_json").then(
    assign_session,
    read_body,
    decode_shorten_request,
    create_link,
    encode_result,
    compress,
    send_json,
)

LIST_USER_URLS = Pipeline("list_user_urls").then(
    assign_session,
    list_user_links,
    encode_user_links,
    compress,
    send_json,
)

SHORTEN_BATCH = Pipeline("shorten_batch").then(
    assign_session,
    read_body,
    decode_batch_request,
    shorten_batch,
    encode_batch_result,
    compress,
    send_json,
)

DELETE_USER_URLS = Pipeline("delete_user_urls").then(
    assign_session,
    read_body,
    decode_delete_request,
    delete_links,
    send_empty,
)


@router.post(
    "/shorten",
    status_code=201,
    summary="Create short URL",
    description="Shorten {\"url\": ...}; answers 409 with the existing short URL if it was already shortened.",
)
async def shorten_url(request: Request):
    return await SHORTEN_JSON.run(request)


@router.post(
    "/shorten/batch",
    status_code=201,
    summary="Create short URLs in batch",
    description="All items are created, or none.",
)
async def shorten_url_batch(request: Request):
    return await SHORTEN_BATCH.run(request)


@router.get(
    "/user/urls",
    summary="List session URLs",
    description="Links created by the caller's session; 204 when there are none.",
)
async def get_user_urls(request: Request):
    return await LIST_USER_URLS.run(request)


@router.delete(
    "/user/urls",
    status_code=202,
    summary="Delete session URLs",
    description="Soft-delete the given keys; keys of other sessions are ignored.",
)
async def delete_user_urls(request: Request):
    return await DELETE_USER_URLS.run(request)
