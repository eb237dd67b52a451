"""Supabase data access layer."""

from launchpad.data.supabase.client import SupabaseClient

__all__ = ["SupabaseClient"]
