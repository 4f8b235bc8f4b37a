"""
Model Gateway Server

A loopback FastAPI service that accepts Anthropic Messages requests and
executes them against another vendor's backend, translating responses
(and streams) back to the Messages format.

Routes:
- POST /v1/messages   execute a request (JSON or text/event-stream)
- GET  /health        backend health probe
"""

import asyncio
import json
import logging
import socket
from typing import Any, AsyncIterator, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError as PydanticValidationError
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource

from .core.config import GatewaySettings
from .core.errors import (
    ConfigurationError,
    GatewayError,
    ProviderError,
    ServerStateError,
    TransformError,
    ValidationError,
)
from .core.interface import ProviderHandler
from .core.registry import HandlerRegistry
from .models.messages import MessagesRequest
from .routing.identifiers import parse_model_string
from .transformers.stream import StreamTransformer

logger = logging.getLogger(__name__)

tracer = trace.get_tracer(__name__)

SERVICE_NAME = "model-gateway"

# How often start() checks whether uvicorn is listening
STARTUP_POLL_INTERVAL = 0.01


def _error_response(status_code: int, message: str, error_type: Optional[str] = None) -> JSONResponse:
    body: Dict[str, Any] = {"error": message}
    if error_type:
        body["type"] = error_type
    return JSONResponse(status_code=status_code, content=body)


def _exception_response(error: Exception) -> JSONResponse:
    """Map an exception raised while executing a request to an HTTP answer."""
    if isinstance(error, ValidationError):
        return _error_response(400, str(error))
    if isinstance(error, TransformError):
        return _error_response(502, str(error), "transform_error")
    if isinstance(error, ProviderError):
        return _error_response(500, str(error), "provider_error")
    return _error_response(500, str(error) or error.__class__.__name__)


async def _parse_messages_request(request: Request) -> MessagesRequest:
    body = await request.body()
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON body")

    try:
        return MessagesRequest.model_validate(data)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid request: {details}")


def create_app(gateway: "GatewayServer") -> FastAPI:
    """
    Build the FastAPI application for a gateway.

    Args:
        gateway: Gateway whose handler and model the routes use

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Model Gateway",
        description="Anthropic Messages API in front of Ollama, OpenRouter and Gemini",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error_response(404, "Not found")
        if exc.status_code == 405:
            return _error_response(405, "Method not allowed")
        return _error_response(exc.status_code, str(exc.detail))

    @app.get("/health")
    async def health():
        """Report backend health; handlers without a probe are healthy."""
        handler = gateway.handler
        probe = getattr(handler, "check_health", None)

        healthy = True
        if probe is not None:
            try:
                healthy = bool(await probe())
            except Exception as e:
                logger.warning(f"Health probe for {gateway.provider} failed: {e}")
                healthy = False

        if not healthy:
            logger.warning(f"Backend {gateway.provider} is unhealthy")

        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "healthy": healthy,
                "provider": gateway.provider,
                "model": gateway.model or "",
            },
        )

    @app.post("/v1/messages")
    async def messages(request: Request):
        """Execute a Messages request against the configured backend."""
        try:
            body = await _parse_messages_request(request)
        except ValidationError as e:
            return _error_response(400, str(e))

        if gateway.model:
            body = body.model_copy(update={"model": gateway.model})

        handler = gateway.handler
        stream_source = getattr(handler, "stream_source", None)

        with tracer.start_as_current_span("gateway.messages") as span:
            span.set_attribute("provider", gateway.provider or "")
            span.set_attribute("model", body.model)
            span.set_attribute("stream", bool(body.stream and stream_source))

            try:
                if body.stream and stream_source is not None:
                    return await _stream_response(handler, body)

                response = await handler.handle(body)
            except Exception as e:
                logger.error(f"Request to {gateway.provider} failed: {e}")
                span.set_attribute("error", str(e))
                return _exception_response(e)

            span.set_attribute("stop_reason", response.stop_reason or "")
            return JSONResponse(content=response.model_dump(mode="json"))

    return app


async def _stream_response(handler: ProviderHandler, request: MessagesRequest) -> StreamingResponse:
    """
    Open the upstream stream and relay it as Messages SSE.

    The first upstream chunk is read before answering so that connection
    and HTTP errors still produce a proper error status.
    """
    chunks = handler.stream_raw(request)
    try:
        first = await chunks.__anext__()
    except StopAsyncIteration:
        first = ""

    transformer = StreamTransformer(handler.stream_source, model=request.model)

    async def event_stream() -> AsyncIterator[str]:
        try:
            output = transformer.transform(first)
            if output:
                yield output
            async for chunk in chunks:
                output = transformer.transform(chunk)
                if output:
                    yield output
        except GatewayError as e:
            logger.error(f"Upstream stream from {handler.provider} failed: {e}")
        finally:
            await chunks.aclose()

        tail = transformer.flush()
        if tail:
            yield tail

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


class GatewayServer:
    """
    In-process gateway server.

    Construct with a ``"<provider>/<model>"`` identifier, or with the
    legacy ``provider=`` (+ ``api_key=``/``base_url=``) form where the
    request body's model is passed through unchanged.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        *,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        handler: Optional[ProviderHandler] = None,
        registry: Optional[HandlerRegistry] = None,
        host: str = "127.0.0.1",
        port: int = 0,
        timeout: float = 120.0,
        log_level: str = "warning",
    ):
        """
        Initialize the gateway.

        Args:
            model: Target as "<provider>/<model>"
            provider: Provider name (legacy form)
            api_key: Credential for key-based providers
            base_url: Backend URL override
            handler: Pre-built handler; skips the registry
            registry: Registry to resolve the handler from
            host: Listen address
            port: Listen port; 0 picks a free one
            timeout: Backend request timeout in seconds
            log_level: uvicorn log level

        Raises:
            ConfigurationError: If the identifier is malformed, the provider is
                unknown, or a required credential is missing
        """
        self._model: Optional[str] = None
        if model is not None:
            provider, self._model = parse_model_string(model)
        elif provider is None and handler is None:
            raise ConfigurationError("Either a model identifier or a provider is required")

        self._owns_registry = registry is None
        self._registry = registry or HandlerRegistry(timeout=timeout)
        if handler is None:
            handler = self._registry.get_or_create(provider, api_key=api_key, base_url=base_url)
        self._handler = handler
        self._provider = provider or getattr(handler, "provider", None)

        self._host = host
        self._requested_port = port
        self._port = 0
        self._log_level = log_level

        self.app = create_app(self)
        self._server: Optional[uvicorn.Server] = None
        self._serve_task: Optional[asyncio.Task] = None

    @property
    def handler(self) -> ProviderHandler:
        return self._handler

    @property
    def provider(self) -> Optional[str]:
        return self._provider

    @property
    def model(self) -> Optional[str]:
        """Backend model name, None in the legacy provider form."""
        return self._model

    @property
    def port(self) -> int:
        """Bound port, 0 when not running."""
        return self._port

    @property
    def address(self) -> str:
        return self._host

    @property
    def url(self) -> str:
        return f"http://{self._host}:{self._port}"

    @property
    def is_running(self) -> bool:
        return self._server is not None

    async def start(self) -> None:
        """
        Bind and start serving; returns once the server is listening.

        Raises:
            ServerStateError: If the server is already running
        """
        if self._server is not None:
            raise ServerStateError("Gateway server is already running")

        config = uvicorn.Config(
            self.app,
            host=self._host,
            port=self._requested_port,
            log_level=self._log_level,
            log_config=None,
            lifespan="off",
        )
        server = uvicorn.Server(config)
        sock = self._bind_socket()

        self._server = server
        self._serve_task = asyncio.create_task(server.serve(sockets=[sock]))

        while not server.started:
            if self._serve_task.done():
                self._server = None
                sock.close()
                error = self._serve_task.exception()
                raise ServerStateError(f"Gateway server failed to start: {error}")
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

        self._port = sock.getsockname()[1]
        logger.info(f"Gateway listening on {self.url} -> {self._provider}/{self._model or '*'}")

    async def shutdown(self) -> None:
        """
        Stop the server, aborting every open connection first.

        Handler calls already in flight are not cancelled. No-op if the
        server is not running.
        """
        if self._server is None:
            return

        server = self._server
        for connection in list(server.server_state.connections):
            transport = getattr(connection, "transport", None)
            if transport is not None:
                transport.abort()

        server.force_exit = True
        server.should_exit = True
        if self._serve_task is not None:
            await self._serve_task

        if self._owns_registry:
            await self._registry.aclose()

        self._server = None
        self._serve_task = None
        self._port = 0
        logger.info("Gateway stopped")

    def _bind_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self._host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self._host, self._requested_port))
        except OSError as e:
            sock.close()
            raise ServerStateError(
                f"Cannot bind {self._host}:{self._requested_port}: {e}"
            ) from e
        return sock

    async def wait_closed(self) -> None:
        """Wait until the server stops (e.g. on SIGINT)."""
        if self._serve_task is not None:
            await self._serve_task


def setup_tracing(settings: GatewaySettings, app: Optional[FastAPI] = None) -> None:
    """Export spans over OTLP when an endpoint is configured."""
    if not settings.otel_endpoint:
        return

    resource = Resource.create({"service.name": SERVICE_NAME})
    provider = TracerProvider(resource=resource)
    processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otel_endpoint))
    provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)

    if app is not None:
        FastAPIInstrumentor.instrument_app(app)
    logger.info(f"OpenTelemetry tracing initialized -> {settings.otel_endpoint}")


async def _run(settings: GatewaySettings) -> None:
    provider = settings.model.partition("/")[0]
    gateway = GatewayServer(
        settings.model,
        api_key=settings.api_key_for(provider),
        base_url=settings.base_url_for(provider),
        host=settings.host,
        port=settings.port,
        timeout=settings.request_timeout,
        log_level=settings.log_level.lower(),
    )
    setup_tracing(settings, gateway.app)

    await gateway.start()
    print(gateway.url, flush=True)
    try:
        await gateway.wait_closed()
    finally:
        await gateway.shutdown()


def main() -> None:
    settings = GatewaySettings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not settings.model:
        logger.error("GATEWAY_MODEL is required, e.g. GATEWAY_MODEL=ollama/codellama")
        raise SystemExit(2)

    try:
        asyncio.run(_run(settings))
    except ConfigurationError as e:
        logger.error(f"Invalid gateway configuration: {e}")
        raise SystemExit(2)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
