"""Identity provider adapters."""

from larmex.adapters.identity.supabase import SupabaseIdentityProvider

__all__ = ["SupabaseIdentityProvider"]
