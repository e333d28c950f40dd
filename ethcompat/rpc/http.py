"""
ethcompat HTTP/WebSocket application

Builds the FastAPI application serving JSON-RPC over ``POST /`` and
subscriptions over a WebSocket endpoint.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response, WebSocket, WebSocketDisconnect
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.cors import CORSMiddleware

from ..chain.base import ChainQuery
from ..config.loader import ProviderConfig
from ..constants import CLIENT_VERSION
from ..logger import LogManager, get_logger
from .context import ProviderContext
from .modules import EthModule, NetModule, Web3Module
from .poller import HeadPoller
from .server import RPCError, RPCServer
from .websocket import WebSocketManager

logger = get_logger(__name__)


def build_rpc_server(context: ProviderContext) -> RPCServer:
    """Register the namespaces enabled in ``[rpc.modules]``."""
    modules = context.config.rpc.modules
    rpc_server = RPCServer()
    if modules.eth:
        rpc_server.register_module(EthModule(context))
    if modules.net:
        rpc_server.register_module(NetModule(context))
    if modules.web3:
        rpc_server.register_module(Web3Module(context))
    return rpc_server


def create_app(chain: Optional[ChainQuery], config: Optional[ProviderConfig] = None) -> FastAPI:
    """
    Create the provider application.

    Args:
        chain: Chain-query implementation backing every method
        config: Provider configuration; defaults when omitted

    The head poller only runs when a chain is given and both the WebSocket
    endpoint and subscriptions are enabled.
    """
    config = config or ProviderConfig()
    config.validate()
    LogManager().set_level(config.provider.log_level)

    context = ProviderContext(chain=chain, config=config)
    rpc_server = build_rpc_server(context)

    ws_config = config.rpc.websocket
    subscriptions_enabled = ws_config.subscriptions_enabled and config.subscriptions.enabled
    ws_manager = WebSocketManager(
        rpc_server=rpc_server,
        max_connections=ws_config.max_connections,
        max_subscriptions_per_conn=ws_config.max_subscriptions,
        max_criteria=config.filters.max_criteria,
        subscriptions_enabled=subscriptions_enabled,
    )

    poller: Optional[HeadPoller] = None
    if chain is not None and config.rpc.enabled and ws_config.enabled and subscriptions_enabled:
        poller = HeadPoller(
            chain,
            ws_manager,
            interval_ms=config.subscriptions.poll_interval_ms,
            max_logs=config.filters.max_logs,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if poller:
            await poller.start()
        try:
            yield
        finally:
            if poller:
                await poller.stop()

    app = FastAPI(
        title="ethcompat",
        description="Ethereum JSON-RPC provider.",
        version=CLIENT_VERSION,
        lifespan=lifespan,
    )
    app.state.context = context
    app.state.rpc_server = rpc_server
    app.state.ws_manager = ws_manager
    app.state.poller = poller

    limiter = Limiter(key_func=get_remote_address)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    http_config = config.rpc.http
    if http_config.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=http_config.cors_origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    if config.rpc.enabled and http_config.enabled:
        @app.post("/")
        @limiter.limit(f"{http_config.rate_limit}/minute")
        async def rpc_endpoint(request: Request):
            """JSON-RPC 2.0 endpoint"""
            result = await rpc_server.handle_request(await request.body())
            if result is None:
                return Response(status_code=204)
            # handle_request returns a JSON string; send it raw to avoid double-encoding
            return Response(content=result, media_type="application/json")

    if config.rpc.enabled and ws_config.enabled:
        @app.websocket(ws_config.path)
        async def ws_endpoint(websocket: WebSocket):
            await websocket.accept()
            try:
                conn = ws_manager.connect(send_fn=websocket.send_text)
            except RPCError as e:
                logger.warning("Rejecting WebSocket client: %s", e.message)
                await websocket.close(code=1013)
                return

            try:
                while True:
                    raw = await websocket.receive_text()
                    reply = await ws_manager.handle_rpc_message(conn.id, raw)
                    if reply is not None:
                        await websocket.send_text(reply)
            except WebSocketDisconnect:
                logger.debug("WS client %s went away", conn.id)
            finally:
                ws_manager.disconnect(conn.id)

    return app
