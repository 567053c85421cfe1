"""
Fablecast Database Layer

Supabase client and the service classes for story jobs and users.
"""

from .client import get_supabase_admin_client, SupabaseClientError
from .jobs import StoryJobService
from .users import UserService

__all__ = [
    "get_supabase_admin_client",
    "SupabaseClientError",
    "StoryJobService",
    "UserService",
]
