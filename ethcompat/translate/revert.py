"""
Revert message encoding.

The chain reports a failed execution as a VM output carrying up to three
descriptions of the failure. Ethereum tooling expects a single ABI payload
``Error(string)``: the selector ``0x08c379a0`` followed by the ABI-encoded
message. ``encode_revert_message`` runs a fixed pipeline over the output:

    select → abi-encode plain text → prefix selector

Each stage is a pure function of the previous stage's result; the only
collaborator is the ABI string encoder, whose failures propagate.
"""

from enum import Enum
from typing import Callable, Tuple

from eth_utils import is_0x_prefixed, remove_0x_prefix

from ..chain.abi import decode_string, encode_string
from ..chain.types import VMOutput
from ..constants import ERROR_SELECTOR


class FailureSource(str, Enum):
    """Where the revert message was taken from, in precedence order."""
    REVERT_REASON = "revertReason"
    VM_ERROR = "vmError"
    DATA = "data"
    NONE = "none"


def select_failure_message(output: VMOutput) -> Tuple[FailureSource, str]:
    """First non-empty field among revert reason, VM error and raw data."""
    for source, value in (
        (FailureSource.REVERT_REASON, output.revert_reason),
        (FailureSource.VM_ERROR, output.vm_error),
        (FailureSource.DATA, output.data),
    ):
        # a bare "0x" carries no message
        if value and value != "0x":
            return source, value
    return FailureSource.NONE, ""


def _to_abi_payload(message: str, encode: Callable[[str], str]) -> str:
    if is_0x_prefixed(message):
        return message
    # Downstream consumers always ABI-decode; plain text would not survive that.
    return encode(message)


def _with_selector(payload: str) -> str:
    if payload.lower().startswith(ERROR_SELECTOR):
        return payload
    return ERROR_SELECTOR + remove_0x_prefix(payload)


def encode_revert_message(
    output: VMOutput,
    encode: Callable[[str], str] = encode_string,
) -> str:
    """
    Normalize a VM failure into an ``Error(string)`` payload.

    An already selector-prefixed payload is returned unchanged; a hex payload
    without the selector keeps its bytes verbatim behind the selector.
    """
    _, message = select_failure_message(output)
    return _with_selector(_to_abi_payload(message, encode))


def decode_revert_message(payload: str) -> str:
    """
    Recover the message from an ``Error(string)`` payload.

    Raises:
        ValueError: if the payload does not start with the selector.
    """
    if not payload.lower().startswith(ERROR_SELECTOR):
        raise ValueError(f"Not an Error(string) payload: {payload[:10]}")
    return decode_string("0x" + payload[len(ERROR_SELECTOR):])
