"""
EIP-1193 subscription envelope.
"""

from typing import Any, Dict


def format_subscription_envelope(result: Any, subscription_id: str) -> Dict[str, Any]:
    """Wrap a pushed result for ``subscription_id``. No validation of ``result``."""
    return {
        "jsonrpc": "2.0",
        "type": "eth_subscription",
        "data": {
            "subscription": subscription_id,
            "result": result,
        },
    }
