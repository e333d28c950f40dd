"""
ethcompat JSON-RPC 2.0 Server

Implements JSON-RPC 2.0 with support for:
- Method registration and namespacing
- Batch requests
- Parameter binding checked against the handler signature
- Error handling with standard codes
"""

import inspect
import json
import asyncio
from typing import Any, Callable, Dict, List, Optional, Union
from dataclasses import dataclass
from enum import IntEnum

from ..constants import LOG_INCLUDE_REQUEST_CONTENT
from ..logger import get_logger

logger = get_logger(__name__)


class RPCErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    # Standard errors
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (-32000 to -32099)
    SERVER_ERROR = -32000
    RESOURCE_NOT_FOUND = -32001
    METHOD_NOT_SUPPORTED = -32004
    LIMIT_EXCEEDED = -32005

    # Ethereum-specific errors
    EXECUTION_ERROR = 3


@dataclass
class RPCError(Exception):
    """JSON-RPC error."""

    code: int
    message: str
    data: Optional[Any] = None

    def __post_init__(self):
        super().__init__(self.message)

    def to_dict(self) -> dict:
        result = {
            "code": int(self.code),
            "message": self.message,
        }
        if self.data is not None:
            result["data"] = self.data
        return result

    @classmethod
    def argument_missing_or_invalid(cls, method: str, param: str) -> "RPCError":
        """Unsupported input: the caller must not get a silently substituted answer."""
        return cls(
            RPCErrorCode.INVALID_PARAMS,
            f"Method {method}: argument '{param}' missing or invalid",
        )


@dataclass
class RPCRequest:
    """JSON-RPC request."""

    jsonrpc: str
    method: str
    params: Union[List, Dict, None]
    id: Union[str, int, None]

    @classmethod
    def from_dict(cls, data: dict) -> "RPCRequest":
        if not isinstance(data, dict):
            raise ValueError("Request must be an object")
        return cls(
            jsonrpc=data.get("jsonrpc", "2.0"),
            method=data.get("method", ""),
            params=data.get("params"),
            id=data.get("id"),
        )

    @property
    def is_notification(self) -> bool:
        return self.id is None


@dataclass
class RPCResponse:
    """JSON-RPC response."""

    jsonrpc: str = "2.0"
    result: Optional[Any] = None
    error: Optional[Dict] = None
    id: Union[str, int, None] = None

    def to_dict(self) -> dict:
        response = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            response["error"] = self.error
        else:
            response["result"] = self.result
        return response

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


RPCMethod = Callable[..., Any]


class RPCModule:
    """
    Base class for RPC modules.

    Subclass this to create method namespaces like eth_, net_, etc.
    """

    namespace: str = ""

    def __init__(self, context: Any = None):
        """
        Args:
            context: Provider context (chain, codec, config)
        """
        self.context = context

    def get_methods(self) -> Dict[str, RPCMethod]:
        """
        Collect the ``@rpc_method`` members of this module.

        Returns:
            Dict mapping full method names (``namespace_name``) to callables
        """
        methods = {}
        for name in dir(self):
            if name.startswith("_"):
                continue
            attr = getattr(self, name)
            if callable(attr) and hasattr(attr, "__rpc_method__"):
                full_name = f"{self.namespace}_{name}" if self.namespace else name
                methods[full_name] = attr
        return methods


def rpc_method(func: RPCMethod) -> RPCMethod:
    """
    Decorator to mark a method as an RPC endpoint.

    Usage:
        @rpc_method
        async def blockNumber(self) -> str:
            ...
    """
    func.__rpc_method__ = True
    return func


def _bind(handler: RPCMethod, params: Union[List, Dict, None]) -> inspect.BoundArguments:
    """Bind request params to the handler signature, mapping mismatches to INVALID_PARAMS."""
    try:
        sig = inspect.signature(handler)
        if params is None:
            return sig.bind()
        if isinstance(params, list):
            return sig.bind(*params)
        if isinstance(params, dict):
            return sig.bind(**params)
    except TypeError as e:
        raise RPCError(RPCErrorCode.INVALID_PARAMS, f"Invalid params: {e}")
    raise RPCError(RPCErrorCode.INVALID_PARAMS, "Invalid params type")


class RPCServer:
    """
    JSON-RPC 2.0 server.

    Transport-agnostic: HTTP and WebSocket front ends hand it decoded
    payloads and send back what it returns.
    """

    def __init__(self):
        self._methods: Dict[str, RPCMethod] = {}
        self._modules: Dict[str, RPCModule] = {}

    def register_method(self, name: str, handler: RPCMethod):
        self._methods[name] = handler
        logger.debug(f"Registered RPC method: {name}")

    def register_module(self, module: RPCModule):
        methods = module.get_methods()
        self._methods.update(methods)
        self._modules[module.namespace] = module
        logger.info(f"Registered RPC module: {module.namespace} ({len(methods)} methods)")

    def unregister_module(self, namespace: str):
        if namespace in self._modules:
            module = self._modules.pop(namespace)
            for name in module.get_methods():
                self._methods.pop(name, None)
            logger.info(f"Unregistered RPC module: {namespace}")

    def get_methods(self) -> List[str]:
        """Get list of registered method names."""
        return list(self._methods.keys())

    async def handle_request(self, data: Union[str, bytes, dict, list]) -> Optional[str]:
        """
        Handle a JSON-RPC request.

        Args:
            data: Request data (JSON string or decoded object)

        Returns:
            JSON response string, or None for notifications
        """
        try:
            if isinstance(data, (str, bytes)):
                parsed = json.loads(data)
            else:
                parsed = data
        except json.JSONDecodeError as e:
            error = RPCError(RPCErrorCode.PARSE_ERROR, f"Parse error: {e}")
            return RPCResponse(error=error.to_dict()).to_json()

        if isinstance(parsed, list):
            if not parsed:
                error = RPCError(RPCErrorCode.INVALID_REQUEST, "Empty batch")
                return RPCResponse(error=error.to_dict()).to_json()

            responses = await asyncio.gather(*[
                self.handle_single(req) for req in parsed
            ])

            responses = [r for r in responses if r is not None]
            if not responses:
                return None
            return json.dumps(responses)

        response = await self.handle_single(parsed)
        if response is None:
            return None
        return json.dumps(response)

    async def handle_single(self, data: Any) -> Optional[dict]:
        """Handle a single request object and return the response dict."""
        try:
            request = RPCRequest.from_dict(data)
        except ValueError:
            return RPCResponse(
                error=RPCError(RPCErrorCode.INVALID_REQUEST, "Invalid request").to_dict()
            ).to_dict()

        if request.jsonrpc != "2.0":
            return RPCResponse(
                id=request.id,
                error=RPCError(RPCErrorCode.INVALID_REQUEST, "Invalid JSON-RPC version").to_dict()
            ).to_dict()

        if not request.method:
            return RPCResponse(
                id=request.id,
                error=RPCError(RPCErrorCode.INVALID_REQUEST, "Missing method").to_dict()
            ).to_dict()

        handler = self._methods.get(request.method)
        if handler is None:
            if request.is_notification:
                return None
            return RPCResponse(
                id=request.id,
                error=RPCError(
                    RPCErrorCode.METHOD_NOT_FOUND,
                    f"Method not found: {request.method}"
                ).to_dict()
            ).to_dict()

        if LOG_INCLUDE_REQUEST_CONTENT:
            logger.debug("--> %s %s", request.method, json.dumps(request.params))
        else:
            logger.debug("--> %s", request.method)

        try:
            bound = _bind(handler, request.params)
            result = await handler(*bound.args, **bound.kwargs)

            if request.is_notification:
                return None
            return RPCResponse(id=request.id, result=result).to_dict()

        except RPCError as e:
            logger.debug("<-- %s error %s: %s", request.method, int(e.code), e.message)
            if request.is_notification:
                return None
            return RPCResponse(id=request.id, error=e.to_dict()).to_dict()

        except Exception as e:
            logger.exception(f"Error handling RPC method {request.method}")
            if request.is_notification:
                return None
            return RPCResponse(
                id=request.id,
                error=RPCError(RPCErrorCode.INTERNAL_ERROR, str(e)).to_dict()
            ).to_dict()
