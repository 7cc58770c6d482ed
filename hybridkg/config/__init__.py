"""
Configuration module for hybridkg.
"""

from .namespaces import DEFAULT_NAMESPACE, StoreNames, store_names

__all__ = [
    "DEFAULT_NAMESPACE",
    "StoreNames",
    "store_names",
]
