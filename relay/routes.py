from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import StreamingResponse

from .deps import get_model_registry
from .errors import bad_request, internal_error
from .llm.continuation import ContinuationSession
from .llm.driver import GenerationOptions
from .llm.normalizer import normalize_turns
from .llm.prompts import build_enhancer_prompt
from .llm.splicer import SwitchableStream
from .logging_config import logger
from .models import Message, ModelInfo, Role
from .provider.discovery import build_model_registry
from .provider.registry import ModelRegistry
from .schemas import ChatOptions, ChatRequest, EnhancerRequest, HealthResponse
from .settings import settings
from .stream_protocol import encode_error_part, encode_text_part

TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"

ChunkEncoder = Callable[[str], bytes]


class SessionStreamingResponse(StreamingResponse):
    """
    StreamingResponse that always cancels the session output when the
    response ends, including when the client disconnects and the body
    iterator is abandoned mid-stream.
    """

    def __init__(self, content: Any, *, output: SwitchableStream, **kwargs: Any) -> None:
        super().__init__(content, **kwargs)
        self.output = output

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            # No-op after a normal end; otherwise cancels the active provider stream.
            self.output.cancel()


def _encode_plain_text(text: str) -> bytes:
    return text.encode("utf-8")


async def _session_body(
    session: ContinuationSession,
    first_chunk: Optional[str],
    encode_text: ChunkEncoder,
    encode_error: Optional[ChunkEncoder],
) -> AsyncIterator[bytes]:
    """
    Encode the session output. Once output has started, a failure can only
    be reported in-band (when the body format has an error part).
    """
    stream: SwitchableStream[str] = session.stream
    try:
        if first_chunk is not None:
            yield encode_text(first_chunk)
        async for chunk in stream:
            yield encode_text(chunk)
    except Exception as exc:
        logger.warning(
            "response failed after output started (%d segment(s)): %s",
            len(session.segments),
            exc,
        )
        if encode_error is not None:
            yield encode_error(str(exc))


async def _stream_session(
    session: ContinuationSession,
    encode_text: ChunkEncoder,
    encode_error: Optional[ChunkEncoder] = None,
) -> SessionStreamingResponse:
    """
    Start the session and wait for its first chunk, so that a failure
    before any output still gets a proper status code.
    """
    session.start()
    try:
        first_chunk: Optional[str] = await anext(session.stream)
    except StopAsyncIteration:
        first_chunk = None
    except Exception as exc:
        logger.error("failed before any output was sent: %s", exc)
        session.stream.cancel()
        raise internal_error() from exc

    return SessionStreamingResponse(
        _session_body(session, first_chunk, encode_text, encode_error),
        output=session.stream,
        media_type=TEXT_MEDIA_TYPE,
    )


def create_app(registry: Optional[ModelRegistry] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if registry is None:
            async with httpx.AsyncClient(timeout=settings.discovery_timeout) as client:
                app.state.model_registry = await build_model_registry(client, settings)
        logger.info(
            "Model registry ready with %d models (default %s/%s)",
            len(app.state.model_registry.models),
            app.state.model_registry.default_provider,
            app.state.model_registry.default_model,
        )
        yield

    app = FastAPI(title="LLM Relay", version="0.1.0", lifespan=lifespan)
    if registry is not None:
        app.state.model_registry = registry

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Basic request/response logging middleware.
        """
        client_host = request.client.host if request.client else "-"
        logger.info(
            "HTTP %s %s from %s", request.method, request.url.path, client_host
        )
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled error while processing %s %s",
                request.method,
                request.url.path,
            )
            raise
        logger.info(
            "HTTP %s %s -> %s", request.method, request.url.path, response.status_code
        )
        return response

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse()

    @app.get("/api/models", response_model=List[ModelInfo])
    async def list_models(
        model_registry: ModelRegistry = Depends(get_model_registry),
    ) -> List[ModelInfo]:
        return model_registry.models

    @app.post("/api/chat")
    async def chat(
        body: ChatRequest,
        model_registry: ModelRegistry = Depends(get_model_registry),
    ):
        """
        Stream one response for the conversation, continuing it
        transparently when the provider truncates the output.
        """
        if not body.messages:
            raise bad_request("messages must not be empty")

        options = body.options or ChatOptions()
        try:
            turns = normalize_turns(body.messages, model_registry)
            session = ContinuationSession(
                model_registry.model_handle(turns.provider, turns.model),
                turns.messages,
                max_segments=settings.max_response_segments,
                options=GenerationOptions(
                    tool_choice=options.tool_choice,
                    max_output_tokens=options.max_output_tokens,
                ),
            )
        except Exception as exc:
            logger.exception("chat: failed to prepare session")
            raise internal_error() from exc

        logger.info(
            "chat: routing %d message(s) to provider=%s model=%s",
            len(body.messages),
            turns.provider,
            turns.model,
        )
        return await _stream_session(session, encode_text_part, encode_error_part)

    @app.post("/api/enhancer")
    async def enhancer(
        body: EnhancerRequest,
        model_registry: ModelRegistry = Depends(get_model_registry),
    ):
        """
        Rewrite a user prompt into a better one. Single segment, plain text
        response.
        """
        if not body.message.strip():
            raise bad_request("message must not be empty")

        turns = normalize_turns(
            [Message(role=Role.USER, content=build_enhancer_prompt(body.message))],
            model_registry,
        )
        session = ContinuationSession(
            model_registry.model_handle(turns.provider, turns.model),
            turns.messages,
            continue_truncated=False,
        )
        return await _stream_session(session, _encode_plain_text)

    return app


__all__ = ["create_app", "SessionStreamingResponse"]
