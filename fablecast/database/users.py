"""
User Service

Read-only access to the ``users`` table for per-owner preferences.
"""

from typing import Optional, Dict, Any
from uuid import UUID

from supabase import Client

from .client import get_supabase_admin_client


class UserService:
    """Service class for user lookups."""

    def __init__(self, client: Optional[Client] = None):
        self._client = client

    @property
    def client(self) -> Client:
        """Get the Supabase client, defaulting to admin client."""
        if self._client is None:
            self._client = get_supabase_admin_client()
        return self._client

    async def get_by_id(self, user_id: UUID | str) -> Optional[Dict[str, Any]]:
        """Get user by ID."""
        result = self.client.table("users").select("*").eq("id", str(user_id)).execute()
        return result.data[0] if result.data else None

    async def get_voice_preference(self, user_id: UUID | str) -> Optional[str]:
        """The narration voice stored in the user's preferences, if any."""
        user = await self.get_by_id(user_id)
        if not user:
            return None
        preferences = user.get("preferences") or {}
        voice = preferences.get("voice_id")
        if isinstance(voice, str) and voice.strip():
            return voice.strip()
        return None
