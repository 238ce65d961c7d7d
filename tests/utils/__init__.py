"""
Test utilities and sample entities for crudgen tests.
"""

from .factories import (
    RecordingHooks,
    category_config,
    category_schema,
    make_upload,
    product_config,
    product_schema,
    sample_registry,
)

__all__ = [
    "RecordingHooks",
    "category_config",
    "category_schema",
    "make_upload",
    "product_config",
    "product_schema",
    "sample_registry",
]
