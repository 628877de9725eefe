"""External collaborators consumed by the memory engine."""

from .config_provider import ConfigProvider, StaticConfigProvider, StoredConfigProvider
from .reference_docs import ReferenceProvider, StaticReferenceProvider, DirectoryReferenceProvider
from .messaging import MessagingGateway, TelegramGateway, DeliveryFailure, prepare_outbound_text

__all__ = [
    "ConfigProvider",
    "StaticConfigProvider",
    "StoredConfigProvider",
    "ReferenceProvider",
    "StaticReferenceProvider",
    "DirectoryReferenceProvider",
    "MessagingGateway",
    "TelegramGateway",
    "DeliveryFailure",
    "prepare_outbound_text",
]
