"""Pipeline stages.

Each stage reads what earlier stages put on the :class:`RequestContext`,
writes its own results, and raises a ``ShortenerError`` to stop the chain.
"""

import gzip
import zlib

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from fastapi.responses import Response

from shortener.lib.exceptions import ValidationError, LinkNotFoundError, EncodingError
from shortener.lib.database.models import BatchItem
from .pipeline import PipelineState, RequestContext, Stage, stage, attach_session
from .api.schemas import (
    ShortenRequest,
    ShortenResponse,
    BatchRequest,
    DeleteRequest,
    UserURLList,
    BatchResponse,
)


# SessionAssign

@stage(PipelineState.SESSION_ASSIGNED)
async def assign_session(ctx: RequestContext) -> None:
    """Take the session id from the cookie, or mint one for the client to keep."""
    user_id = ctx.request.cookies.get(ctx.config.session_cookie_name)
    if not user_id:
        user_id = ctx.request.app.state.session_ids.generate()
        ctx.new_session = True
    ctx.user_id = user_id


# BodyRead

@stage(PipelineState.BODY_READ)
async def read_body(ctx: RequestContext) -> None:
    """Read the whole body, gunzipping it when the client says it is gzip."""
    raw = await ctx.request.body()
    if "gzip" in ctx.request.headers.get("content-encoding", "").lower():
        try:
            raw = gzip.decompress(raw)
        except (OSError, EOFError, zlib.error) as e:
            raise ValidationError(f"Malformed gzip body: {e}") from e
    ctx.raw_data = raw


# Decode

def _validation_message(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"Malformed payload at {location}: {first.get('msg')}"


@stage(PipelineState.DECODED)
async def decode_plain_url(ctx: RequestContext) -> None:
    try:
        url = ctx.raw_data.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise ValidationError("Body is not valid UTF-8") from e
    if not url:
        raise ValidationError("URL is required")
    ctx.url = url


@stage(PipelineState.DECODED)
async def decode_shorten_request(ctx: RequestContext) -> None:
    try:
        payload = ShortenRequest.model_validate_json(ctx.raw_data)
    except PydanticValidationError as e:
        raise ValidationError(_validation_message(e)) from e
    ctx.url = payload.url


@stage(PipelineState.DECODED)
async def decode_batch_request(ctx: RequestContext) -> None:
    try:
        items = BatchRequest.validate_json(ctx.raw_data)
    except PydanticValidationError as e:
        raise ValidationError(_validation_message(e)) from e
    ctx.batch = [BatchItem(item.correlation_id, item.original_url) for item in items]


@stage(PipelineState.DECODED)
async def decode_delete_request(ctx: RequestContext) -> None:
    try:
        ctx.keys = DeleteRequest.validate_json(ctx.raw_data)
    except PydanticValidationError as e:
        raise ValidationError(_validation_message(e)) from e


# StoreInvoke

@stage(PipelineState.STORE_RESOLVED)
async def create_link(ctx: RequestContext) -> None:
    """Shorten ``ctx.url``; 201 for a new link, 409 with the existing one otherwise."""
    result = await ctx.service.create_short_url(ctx.url, ctx.user_id, deadline=ctx.deadline)
    ctx.data = result["short_url"]
    ctx.status_code = 409 if result["conflict"] else 201


@stage(PipelineState.STORE_RESOLVED)
async def list_user_links(ctx: RequestContext) -> None:
    try:
        ctx.data = await ctx.service.list_user_urls(ctx.user_id, deadline=ctx.deadline)
        ctx.status_code = 200
    except LinkNotFoundError:
        ctx.data = None
        ctx.status_code = 204


@stage(PipelineState.STORE_RESOLVED)
async def shorten_batch(ctx: RequestContext) -> None:
    ctx.data = await ctx.service.shorten_batch(ctx.batch, ctx.user_id, deadline=ctx.deadline)
    ctx.status_code = 201


@stage(PipelineState.STORE_RESOLVED)
async def delete_links(ctx: RequestContext) -> None:
    await ctx.service.delete_user_urls(ctx.keys, ctx.user_id, deadline=ctx.deadline)
    ctx.status_code = 202


@stage(PipelineState.STORE_RESOLVED)
async def resolve_link(ctx: RequestContext) -> None:
    key = ctx.request.path_params["key"]
    ctx.data = await ctx.service.get_original_url(key, deadline=ctx.deadline)
    ctx.status_code = 307


@stage(PipelineState.STORE_RESOLVED)
async def check_store(ctx: RequestContext) -> None:
    await ctx.service.ping(deadline=ctx.deadline)
    ctx.status_code = 200


# Encode

@stage(PipelineState.ENCODED)
async def encode_result(ctx: RequestContext) -> None:
    """Wrap a short URL in the ``{"result": ...}`` envelope."""
    ctx.body = _dump(ShortenResponse(result=ctx.data))
    ctx.media_type = "application/json"


def encode_json(adapter: TypeAdapter, name: str) -> Stage:
    """Stage serializing ``ctx.data`` with a pydantic adapter (empty body for no data)."""
    async def encode(ctx: RequestContext) -> None:
        ctx.media_type = "application/json"
        if ctx.data is None:
            ctx.body = b""
            return
        try:
            ctx.body = adapter.dump_json(adapter.validate_python(ctx.data))
        except PydanticValidationError as e:
            raise EncodingError(f"Unable to encode response: {e}") from e

    return Stage(name, encode, PipelineState.ENCODED)


encode_user_links = encode_json(UserURLList, "encode_user_links")
encode_batch_result = encode_json(BatchResponse, "encode_batch_result")


def _dump(model: BaseModel) -> bytes:
    return model.model_dump_json().encode("utf-8")


# CompressOut

@stage(PipelineState.COMPRESSED)
async def compress(ctx: RequestContext) -> None:
    """Gzip the body when the client accepts it."""
    accept = ctx.request.headers.get("accept-encoding", "")
    body = ctx.render()
    if "gzip" not in accept.lower() or not body:
        ctx.body = body
        return
    try:
        ctx.body = gzip.compress(body, compresslevel=1)
    except (OSError, zlib.error) as e:
        raise EncodingError(f"Unable to compress response: {e}") from e
    ctx.headers["Content-Encoding"] = "gzip"
    ctx.headers["Vary"] = "Accept-Encoding"


# Send

def _send(ctx: RequestContext, media_type: str) -> None:
    response = Response(
        content=ctx.render(),
        status_code=ctx.status_code,
        headers=ctx.headers,
        media_type=media_type,
    )
    attach_session(ctx, response)
    ctx.response = response


@stage(PipelineState.SENT)
async def send_plain_text(ctx: RequestContext) -> None:
    _send(ctx, "text/plain; charset=utf-8")


@stage(PipelineState.SENT)
async def send_json(ctx: RequestContext) -> None:
    _send(ctx, ctx.media_type)


@stage(PipelineState.SENT)
async def send_redirect(ctx: RequestContext) -> None:
    ctx.headers["Location"] = ctx.data
    ctx.response = Response(status_code=ctx.status_code, headers=ctx.headers)


@stage(PipelineState.SENT)
async def send_empty(ctx: RequestContext) -> None:
    response = Response(status_code=ctx.status_code, headers=ctx.headers)
    attach_session(ctx, response)
    ctx.response = response
