"""
External service connectors: ingredient classifier and shared HTTP retry.
"""
from .classifier import ClassifierClient
from .http_retry import post_with_retries

__all__ = [
    "ClassifierClient",
    "post_with_retries",
]
