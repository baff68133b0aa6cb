"""Chat history repository for database operations."""
from asyncio import to_thread
from typing import List
from supabase import Client
import logging

logger = logging.getLogger(__name__)


class ChatRepository:
    """Handle chat_messages database operations."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def insert_message(
        self,
        user_id: str,
        sender: str,
        text: str,
        component_type: str,
    ) -> bool:
        """Insert a message. Returns True on success, False on failure."""
        try:
            data = {
                "user_id": user_id,
                "sender": sender,
                "text": text,
                "component_type": component_type,
            }
            await to_thread(
                lambda: self.supabase.table("chat_messages").insert(data).execute()
            )
            return True
        except Exception as e:
            logger.error(f"Error inserting chat message: {e}", exc_info=True)
            return False

    async def get_messages(self, user_id: str) -> List[dict]:
        """Get a user's chat history, oldest first.

        Raises on database errors so callers can distinguish 'no messages'
        from 'database is down'.
        """
        try:
            response = await to_thread(
                lambda: self.supabase.table("chat_messages")
                .select("*")
                .eq("user_id", user_id)
                .order("created_at")
                .execute()
            )
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error getting chat messages: {e}")
            raise

    async def clear_messages(self, user_id: str) -> None:
        """Delete a user's whole chat history."""
        try:
            await to_thread(
                lambda: self.supabase.table("chat_messages")
                .delete()
                .eq("user_id", user_id)
                .execute()
            )
            logger.info(f"Cleared chat history for user {user_id}")
        except Exception as e:
            logger.error(f"Error clearing chat messages: {e}")
            raise
