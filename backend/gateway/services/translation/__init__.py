"""
Translation Module

Request-pipeline orchestration on top of the provider adapters:
- ProviderDispatcher: bounded retry with backoff and ordered fallback
- BatchCoordinator: cache partition, grouping, dispatch and merge
- LanguageService: detection and the language catalog
"""
from .retry import RetryPolicy
from .dispatcher import Dispatched, ProviderDispatcher
from .coordinator import BatchCoordinator
from .languages import LanguageService, describe_language

__all__ = [
    "RetryPolicy",
    "Dispatched",
    "ProviderDispatcher",
    "BatchCoordinator",
    "LanguageService",
    "describe_language",
]
