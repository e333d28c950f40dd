"""
ethcompat WebSocket JSON-RPC 2.0 Server with Subscriptions

Provides real-time event streaming:
  - eth_subscribe / eth_unsubscribe (Ethereum-compatible)
  - newHeads: new block headers
  - logs: contract event logs matching a filter

``newPendingTransactions`` is not offered: the chain exposes no pending
block to observe.

Notifications use the EIP-1193 envelope
``{"jsonrpc", "type": "eth_subscription", "data": {"subscription", "result"}}``.
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ..exceptions import InvalidFilterError
from ..logger import get_logger
from ..translate.filters import build_filter_criteria, criteria_match, validate_filter_request
from ..translate.subscription import format_subscription_envelope
from .server import RPCError, RPCErrorCode, RPCResponse, RPCServer

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Subscription types
# ---------------------------------------------------------------------------

class SubscriptionType(str, Enum):
    """Supported subscription channels."""
    NEW_HEADS = "newHeads"
    LOGS = "logs"


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass
class Subscription:
    """A single subscription held by a connection."""
    id: str
    sub_type: SubscriptionType
    criteria: List[Dict[str, str]] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)


@dataclass
class WSConnection:
    """Tracks one WebSocket client connection."""
    id: str
    subscriptions: Dict[str, Subscription] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    # Async callable taking the serialized notification; bound by the transport
    send_fn: Optional[Callable] = None
    closed: bool = False

    @property
    def subscription_count(self) -> int:
        return len(self.subscriptions)


# ---------------------------------------------------------------------------
# WebSocket subscription manager
# ---------------------------------------------------------------------------

class WebSocketManager:
    """
    Manages WebSocket connections and subscriptions.

    Transport-agnostic: it keeps subscription state and dispatches events;
    the actual socket I/O belongs to the HTTP application.
    """

    def __init__(
        self,
        rpc_server: Optional[RPCServer] = None,
        max_connections: int = 100,
        max_subscriptions_per_conn: int = 100,
        max_criteria: int = 256,
        subscriptions_enabled: bool = True,
    ):
        self.rpc_server = rpc_server
        self.subscriptions_enabled = subscriptions_enabled
        self.max_connections = max_connections
        self.max_subscriptions_per_conn = max_subscriptions_per_conn
        self.max_criteria = max_criteria

        self._connections: Dict[str, WSConnection] = {}

        # sub_type → set of (conn_id, sub_id)
        self._type_index: Dict[SubscriptionType, Set[Tuple[str, str]]] = {
            st: set() for st in SubscriptionType
        }

        self.total_connections_served: int = 0
        self.total_subscriptions_created: int = 0
        self.total_events_dispatched: int = 0

    # -- Connection lifecycle -----------------------------------------------

    def connect(self, send_fn: Optional[Callable] = None) -> WSConnection:
        """
        Register a new WebSocket connection.

        Raises:
            RPCError: if max connections exceeded
        """
        if len(self._connections) >= self.max_connections:
            raise RPCError(
                RPCErrorCode.LIMIT_EXCEEDED,
                f"Max WebSocket connections reached ({self.max_connections})"
            )

        conn_id = uuid.uuid4().hex[:16]
        conn = WSConnection(id=conn_id, send_fn=send_fn)
        self._connections[conn_id] = conn
        self.total_connections_served += 1
        logger.info("WS connect: %s (active=%d)", conn_id, len(self._connections))
        return conn

    def disconnect(self, conn_id: str) -> None:
        """Remove a connection and all its subscriptions."""
        conn = self._connections.pop(conn_id, None)
        if conn is None:
            return

        conn.closed = True
        for sub_id, sub in conn.subscriptions.items():
            self._type_index[sub.sub_type].discard((conn_id, sub_id))
        conn.subscriptions.clear()

        logger.info("WS disconnect: %s (active=%d)", conn_id, len(self._connections))

    # -- Subscriptions ------------------------------------------------------

    def subscribe(
        self,
        conn_id: str,
        sub_type: str,
        filter_params: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Create a subscription on a connection.

        For ``logs`` the filter is translated to criteria once, here, so
        that publishing only has to match.

        Returns:
            Subscription ID (0x-prefixed hex)

        Raises:
            RPCError: on invalid type or filter, missing connection, or limit exceeded
        """
        conn = self._connections.get(conn_id)
        if conn is None:
            raise RPCError(RPCErrorCode.INTERNAL_ERROR, "Connection not found")

        if not self.subscriptions_enabled:
            raise RPCError(RPCErrorCode.METHOD_NOT_SUPPORTED, "Subscriptions are disabled")

        try:
            st = SubscriptionType(sub_type)
        except ValueError:
            raise RPCError(
                RPCErrorCode.INVALID_PARAMS,
                f"Unknown subscription type: {sub_type}. "
                f"Valid: {[t.value for t in SubscriptionType]}"
            )

        if conn.subscription_count >= self.max_subscriptions_per_conn:
            raise RPCError(
                RPCErrorCode.LIMIT_EXCEEDED,
                f"Max subscriptions per connection reached ({self.max_subscriptions_per_conn})"
            )

        criteria: List[Dict[str, str]] = []
        if st is SubscriptionType.LOGS and filter_params:
            if not isinstance(filter_params, dict):
                raise RPCError.argument_missing_or_invalid("eth_subscribe", "filter")
            address = filter_params.get("address")
            topics = filter_params.get("topics")
            try:
                validate_filter_request(address, topics, self.max_criteria)
            except InvalidFilterError as e:
                raise RPCError.argument_missing_or_invalid("eth_subscribe", e.field)
            criteria = build_filter_criteria(address, topics)

        sub_id = "0x" + uuid.uuid4().hex
        conn.subscriptions[sub_id] = Subscription(id=sub_id, sub_type=st, criteria=criteria)
        self._type_index[st].add((conn_id, sub_id))
        self.total_subscriptions_created += 1

        logger.debug("WS subscribe: conn=%s type=%s sub=%s", conn_id, sub_type, sub_id)
        return sub_id

    def unsubscribe(self, conn_id: str, sub_id: str) -> bool:
        """
        Remove a subscription.

        Returns:
            True if removed, False if not found
        """
        conn = self._connections.get(conn_id)
        if conn is None:
            return False

        sub = conn.subscriptions.pop(sub_id, None)
        if sub is None:
            return False

        self._type_index[sub.sub_type].discard((conn_id, sub_id))
        logger.debug("WS unsubscribe: conn=%s sub=%s", conn_id, sub_id)
        return True

    def has_subscribers(self, sub_type: SubscriptionType) -> bool:
        return bool(self._type_index.get(sub_type))

    # -- Event dispatch -----------------------------------------------------

    async def publish(self, sub_type: SubscriptionType, data: Any) -> int:
        """
        Publish an event to all subscribers of a given type.

        For ``logs`` subscriptions, *data* is an Ethereum-shaped log and is
        matched against each subscription's criteria before delivery.

        Returns:
            Number of notifications sent
        """
        targets = list(self._type_index.get(sub_type, set()))
        if not targets:
            return 0

        sent = 0
        for conn_id, sub_id in targets:
            conn = self._connections.get(conn_id)
            if conn is None or conn.closed:
                self._type_index[sub_type].discard((conn_id, sub_id))
                continue

            sub = conn.subscriptions.get(sub_id)
            if sub is None:
                self._type_index[sub_type].discard((conn_id, sub_id))
                continue

            if sub_type is SubscriptionType.LOGS and not criteria_match(data, sub.criteria):
                continue

            notification = format_subscription_envelope(data, sub_id)

            if conn.send_fn:
                try:
                    await conn.send_fn(json.dumps(notification))
                    sent += 1
                except Exception:
                    logger.warning("Failed to send to conn %s, disconnecting", conn_id)
                    self.disconnect(conn_id)
            else:
                # No transport bound
                sent += 1

        self.total_events_dispatched += sent
        return sent

    # -- RPC handler --------------------------------------------------------

    def _reply(self, req_id: Any, result: Any = None, error: Optional[RPCError] = None) -> str:
        return RPCResponse(
            id=req_id,
            result=result,
            error=error.to_dict() if error else None,
        ).to_json()

    async def handle_rpc_message(self, conn_id: str, raw_data: str) -> Optional[str]:
        """
        Handle a JSON-RPC message arriving on a WebSocket.

        Intercepts ``eth_subscribe`` and ``eth_unsubscribe``; every other
        method is delegated to the underlying RPCServer.

        Returns:
            JSON response string, or None for notifications
        """
        try:
            parsed = json.loads(raw_data)
        except json.JSONDecodeError:
            return RPCResponse(
                error=RPCError(RPCErrorCode.PARSE_ERROR, "Parse error").to_dict()
            ).to_json()

        if not isinstance(parsed, dict):
            if self.rpc_server:
                return await self.rpc_server.handle_request(parsed)
            return self._reply(None, error=RPCError(RPCErrorCode.INTERNAL_ERROR, "No RPC server"))

        method = parsed.get("method", "")
        params = parsed.get("params") or []
        req_id = parsed.get("id")

        if method == "eth_subscribe":
            try:
                if not isinstance(params, list) or not params:
                    raise RPCError.argument_missing_or_invalid("eth_subscribe", "subscriptionType")
                filter_params = params[1] if len(params) > 1 else None
                return self._reply(req_id, self.subscribe(conn_id, params[0], filter_params))
            except RPCError as e:
                return self._reply(req_id, error=e)

        if method == "eth_unsubscribe":
            sub_id = params[0] if isinstance(params, list) and params else ""
            return self._reply(req_id, self.unsubscribe(conn_id, sub_id))

        if self.rpc_server:
            return await self.rpc_server.handle_request(parsed)

        return self._reply(req_id, error=RPCError(RPCErrorCode.INTERNAL_ERROR, "No RPC server"))

    # -- Diagnostics --------------------------------------------------------

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    @property
    def active_subscriptions(self) -> int:
        return sum(c.subscription_count for c in self._connections.values())

    def get_stats(self) -> Dict[str, Any]:
        return {
            "active_connections": self.active_connections,
            "active_subscriptions": self.active_subscriptions,
            "total_connections_served": self.total_connections_served,
            "total_subscriptions_created": self.total_subscriptions_created,
            "total_events_dispatched": self.total_events_dispatched,
            "subscriptions_by_type": {
                st.value: len(subs) for st, subs in self._type_index.items()
            },
        }
