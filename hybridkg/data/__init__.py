"""
Sample data for hybridkg.
"""

from hybridkg.data.professional_network import (
    EXAMPLE_QUERY,
    RELATIONSHIP_TYPES,
    sample_entities,
    sample_relationships,
)

__all__ = [
    "EXAMPLE_QUERY",
    "RELATIONSHIP_TYPES",
    "sample_entities",
    "sample_relationships",
]
