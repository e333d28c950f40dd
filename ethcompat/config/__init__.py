from .loader import (
    FiltersConfig,
    ProviderConfig,
    ProviderSectionConfig,
    SubscriptionsConfig,
    load_config,
)

__all__ = [
    "FiltersConfig",
    "ProviderConfig",
    "ProviderSectionConfig",
    "SubscriptionsConfig",
    "load_config",
]
