"""
ethcompat Exceptions

Exceptions raised below the JSON-RPC layer. Only the provider modules turn
these into public ``RPCError`` responses.
"""


class EthCompatException(Exception):
    """Base exception for ethcompat."""
    pass


class UnsupportedBlockSpecifier(EthCompatException):
    """Block reference has no counterpart on the chain (e.g. ``pending``)."""

    def __init__(self, value):
        super().__init__(f"Unsupported block specifier: {value!r}")
        self.value = value


class InvalidFilterError(EthCompatException):
    """Log filter request cannot be expressed as chain criteria."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"Invalid filter {field}: {reason}")
        self.field = field
        self.reason = reason


class ConfigurationError(EthCompatException):
    """Configuration error."""
    pass
