"""
ethcompat web3_* RPC Methods

Utility JSON-RPC methods.
"""

from eth_utils import decode_hex, encode_hex, keccak

from ..server import RPCError, RPCModule, rpc_method
from ...constants import CLIENT_VERSION


class Web3Module(RPCModule):
    """
    Web3 utility methods (web3_* namespace).
    """

    namespace = "web3"

    @rpc_method
    async def clientVersion(self) -> str:
        """
        Returns the client version string.
        """
        network = self.context.config.provider.network_name if self.context else "unknown"
        return f"ethcompat/{CLIENT_VERSION}/{network}/python"

    @rpc_method
    async def sha3(self, data: str) -> str:
        """
        Returns Keccak-256 hash of input.

        Args:
            data: Input data (hex string with 0x prefix)

        Returns:
            Hash (hex with 0x prefix)
        """
        try:
            input_bytes = decode_hex(data)
        except (ValueError, TypeError):
            raise RPCError.argument_missing_or_invalid("web3_sha3", "data")
        return encode_hex(keccak(input_bytes))
