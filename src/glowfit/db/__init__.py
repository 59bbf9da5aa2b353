"""
Glowfit - Persistence.

Profile and plan stores backed by Supabase. The abstract store classes are the
contract the sequencer, orchestrator and generation service depend on.
"""

from glowfit.db.client import get_service_client
from glowfit.db.plans import PlanStore, SupabasePlanStore
from glowfit.db.profiles import ProfileStore, SupabaseProfileStore

__all__ = [
    "get_service_client",
    "PlanStore",
    "ProfileStore",
    "SupabasePlanStore",
    "SupabaseProfileStore",
]
