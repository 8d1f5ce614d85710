"""Persistence adapters. SupabaseAdapter is imported on demand by build_service."""

from smsgate.tools.persistence.adapters.in_memory_adapter import InMemoryAdapter

__all__ = ["InMemoryAdapter"]
