"""
ethcompat Package

Ethereum JSON-RPC provider over a chain with a different block, filter and
revert model.

Core imports are lazily loaded so that the translators can be used without
the web stack:

    from ethcompat.translate import resolve_block_specifier, build_filter_criteria
    from ethcompat.rpc.http import create_app
"""

__version__ = "1.2.0"


# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'create_app':
        from .rpc.http import create_app
        return create_app
    elif name == 'ChainQuery':
        from .chain import ChainQuery
        return ChainQuery
    elif name == 'load_config':
        from .config import load_config
        return load_config
    raise AttributeError(f"module 'ethcompat' has no attribute {name!r}")

__all__ = ['create_app', 'ChainQuery', 'load_config']
