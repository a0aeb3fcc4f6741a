"""Structural schemas for registry documents.

Schemas are plain JSON Schema dicts so they can be exported and used with
any JSON Schema tool; ``regkit.schema.validator`` walks them without an
external dependency.
"""
