"""
External integrations: commerce store adapters and Telegram alerts.
"""

from integrations.base import CommerceStore
from integrations.memory_store import InMemoryCommerceStore, seed_demo_data
from integrations.supabase_store import SupabaseCommerceStore

__all__ = [
    "CommerceStore",
    "InMemoryCommerceStore",
    "seed_demo_data",
    "SupabaseCommerceStore",
]
