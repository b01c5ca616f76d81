"""Infrastructure adapters (filesystem persistence)."""

from .json_document import JsonDocument

__all__ = ["JsonDocument"]
