"""Common type definitions for crudgen.

This module provides type aliases for commonly used types across the application.
"""

from typing import Any

# JSON-compatible types for API responses and database fields
type JSONDict = dict[str, Any]

# Record field values keyed by field name
type RecordData = dict[str, Any]

# Raw submitted form payload, possibly with bracketed keys
type Payload = dict[str, Any]
