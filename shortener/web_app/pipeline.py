"""Request pipeline: an ordered chain of stages sharing one typed request context.

Every endpoint is a :class:`Pipeline` built from stages (see ``stages.py``).
Stages run one after another and communicate only through the
:class:`RequestContext`. The first stage that raises stops the chain; the
pipeline then answers with the error's status code and no later stage runs.

States a request moves through::

    START -> SESSION_ASSIGNED -> BODY_READ -> [DECODED] -> STORE_RESOLVED
          -> [ENCODED] -> [COMPRESSED] -> SENT

Any stage may move the request to ERROR_SENT instead.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from fastapi import Request
from fastapi.responses import Response

from shortener.lib.deadline import Deadline
from shortener.lib.exceptions import ShortenerError
from shortener.lib.service import URLShortenerService
from shortener.lib.database.models import BatchItem


class PipelineState(enum.IntEnum):
    """Progress of a request through its pipeline."""

    START = 0
    SESSION_ASSIGNED = 1
    BODY_READ = 2
    DECODED = 3
    STORE_RESOLVED = 4
    ENCODED = 5
    COMPRESSED = 6
    SENT = 7
    ERROR_SENT = 8


@dataclass
class RequestContext:
    """Request-scoped values written by one stage and read by the next."""

    request: Request
    service: URLShortenerService
    config: Any
    deadline: Deadline = field(default_factory=Deadline)
    state: PipelineState = PipelineState.START

    # SessionAssign
    user_id: Optional[str] = None
    new_session: bool = False

    # BodyRead / Decode
    raw_data: bytes = b""
    url: Optional[str] = None
    batch: List[BatchItem] = field(default_factory=list)
    keys: List[str] = field(default_factory=list)

    # StoreInvoke / Encode / CompressOut
    data: Any = None
    body: Optional[bytes] = None
    status_code: int = 200
    media_type: str = "text/plain; charset=utf-8"
    headers: Dict[str, str] = field(default_factory=dict)

    # Send
    response: Optional[Response] = None

    def render(self) -> bytes:
        """Outbound body: the encoded body if a stage produced one, else ``data`` as text."""
        if self.body is not None:
            return self.body
        if self.data is None:
            return b""
        return str(self.data).encode("utf-8")


StageFunc = Callable[[RequestContext], Awaitable[None]]


@dataclass(frozen=True)
class Stage:
    """A named pipeline step and the state it moves the request to."""

    name: str
    func: StageFunc
    reaches: PipelineState

    async def __call__(self, ctx: RequestContext) -> None:
        await self.func(ctx)


def stage(reaches: PipelineState) -> Callable[[StageFunc], Stage]:
    """Decorator turning an async function into a :class:`Stage`."""
    def decorator(func: StageFunc) -> Stage:
        return Stage(func.__name__, func, reaches)
    return decorator


class Pipeline:
    """Immutable, ordered list of stages for one endpoint."""

    def __init__(
        self,
        name: str,
        stages: Sequence[Stage] = (),
        logger: Optional[logging.Logger] = None,
    ):
        self.name = name
        self.stages = tuple(stages)
        self.logger = logger or logging.getLogger(__name__)

        last = PipelineState.START
        for s in self.stages:
            if s.reaches <= last or s.reaches is PipelineState.ERROR_SENT:
                raise ValueError(
                    f"Pipeline '{name}': stage '{s.name}' ({s.reaches.name}) "
                    f"cannot follow {last.name}"
                )
            last = s.reaches

    def then(self, *stages: Stage) -> "Pipeline":
        """Return a new pipeline with ``stages`` appended."""
        return Pipeline(self.name, self.stages + stages, self.logger)

    @property
    def complete(self) -> bool:
        return bool(self.stages) and self.stages[-1].reaches is PipelineState.SENT

    def new_context(self, request: Request) -> RequestContext:
        app_state = request.app.state
        config = app_state.config
        return RequestContext(
            request=request,
            service=app_state.service,
            config=config,
            deadline=Deadline.after(getattr(config, "request_timeout_seconds", None)),
        )

    async def run(self, request: Request) -> Response:
        """Run every stage against a fresh context and return the response."""
        ctx = self.new_context(request)
        return await self.execute(ctx)

    async def execute(self, ctx: RequestContext) -> Response:
        for s in self.stages:
            try:
                await s(ctx)
            except ShortenerError as e:
                self.logger.warning(
                    f"{self.name}: stage '{s.name}' failed with {e.status_code}: {e}"
                )
                return self.error_response(ctx, e.status_code, str(e))
            except Exception:
                self.logger.exception(f"{self.name}: stage '{s.name}' raised")
                return self.error_response(ctx, 500, "internal error")

            ctx.state = s.reaches
            self.logger.debug(f"{self.name}: {s.name} -> {ctx.state.name}")

        if ctx.response is None:
            self.logger.error(f"{self.name}: pipeline finished without a response")
            return self.error_response(ctx, 500, "no response produced")

        return ctx.response

    def error_response(self, ctx: RequestContext, status_code: int, message: str) -> Response:
        """Plain-text error response; halts the request in ERROR_SENT."""
        response = Response(
            content=f"{message}\n",
            status_code=status_code,
            media_type="text/plain; charset=utf-8",
        )
        attach_session(ctx, response)
        ctx.response = response
        ctx.state = PipelineState.ERROR_SENT
        return response


def attach_session(ctx: RequestContext, response: Response) -> None:
    """Ask the client to persist a session id minted for this request."""
    if ctx.new_session and ctx.user_id:
        response.set_cookie(
            key=ctx.config.session_cookie_name,
            value=ctx.user_id,
            path="/",
            httponly=True,
            samesite="lax",
        )
