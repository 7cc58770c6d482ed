"""
Store Namespaces
================

Every FalkorDB graph and Qdrant collection hybridkg creates is named after a
namespace, so scratch corpora and the production corpus never share a store:

    HYBRIDKG_ENV=prod  ->  graph "hybridkg_prod", collection "hybridkg_prod_entities"

Without HYBRIDKG_ENV the namespace is "test", which is always safe to reset.

Usage:
    from hybridkg.config import store_names

    names = store_names("staging")
    names.graph_name       # "hybridkg_staging"
    names.collection_name  # "hybridkg_staging_entities"
"""

import os
import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_NAMESPACE = "test"

# Part of a FalkorDB key and of a Qdrant collection name
_NAMESPACE_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


@dataclass(frozen=True)
class StoreNames:
    """External store names for one namespace."""
    namespace: str
    graph_name: str
    collection_name: str


def store_names(namespace: Optional[str] = None) -> StoreNames:
    """
    Store names for a namespace.

    Args:
        namespace: e.g. "test", "prod" (default: $HYBRIDKG_ENV, else "test")

    Raises:
        ValueError: namespace is not a lower-case identifier
    """
    namespace = (namespace or os.environ.get("HYBRIDKG_ENV") or DEFAULT_NAMESPACE).strip().lower()
    if not _NAMESPACE_PATTERN.match(namespace):
        raise ValueError(f"Invalid store namespace: {namespace!r}")

    prefix = f"hybridkg_{namespace}"
    return StoreNames(
        namespace=namespace,
        graph_name=prefix,
        collection_name=f"{prefix}_entities",
    )
