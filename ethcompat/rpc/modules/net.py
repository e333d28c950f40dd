"""
ethcompat net_* RPC Methods

Network-related JSON-RPC methods.
"""

from ..server import RPCModule, rpc_method


class NetModule(RPCModule):
    """
    Network RPC methods (net_* namespace).

    The provider is not a peer of the chain network; it only reports the
    network id clients use to pick signing parameters.
    """

    namespace = "net"

    @rpc_method
    async def version(self) -> str:
        """
        Returns the network ID.

        Returns:
            Network ID as a decimal string
        """
        return str(self.context.chain_id())

    @rpc_method
    async def listening(self) -> bool:
        return True

    @rpc_method
    async def peerCount(self) -> str:
        return "0x0"
