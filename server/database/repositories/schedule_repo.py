"""Schedule repository for database operations."""
from asyncio import to_thread
from typing import List
from supabase import Client
import logging

logger = logging.getLogger(__name__)


class ScheduleRepository:
    """Handle timetable (schedule_entries) database operations."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def create_entry(
        self,
        user_id: str,
        subject_name: str,
        start_time: str,
        end_time: str,
        days: List[int],
        color: str,
    ) -> dict:
        """Create a recurring class entry."""
        try:
            data = {
                "user_id": user_id,
                "subject_name": subject_name,
                "start_time": start_time,
                "end_time": end_time,
                "days": days,
                "color": color,
            }

            response = await to_thread(
                lambda: self.supabase.table("schedule_entries").insert(data).execute()
            )
            return response.data[0] if response.data else None

        except Exception as e:
            logger.error(f"Error creating schedule entry: {e}")
            raise

    async def get_entries_by_user(self, user_id: str) -> List[dict]:
        """Get all of a user's classes, ordered by start time."""
        try:
            response = await to_thread(
                lambda: self.supabase.table("schedule_entries")
                .select("*")
                .eq("user_id", user_id)
                .order("start_time")
                .execute()
            )
            return response.data if response.data else []
        except Exception as e:
            logger.error(f"Error getting schedule entries: {e}")
            raise
