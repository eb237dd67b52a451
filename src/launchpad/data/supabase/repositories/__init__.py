"""Repository pattern implementations."""

from launchpad.data.supabase.repositories.token_repo import CreatedTokenRepository

__all__ = ["CreatedTokenRepository"]
