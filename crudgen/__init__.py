"""
crudgen - schema-driven record administration engine.

Given an entity schema, crudgen synthesizes listing, creation, editing,
soft-delete, restoration and permanent removal without per-entity code.
"""

__version__ = "0.1.0"
