"""Dashboard item repository (tasks and study tasks)."""
from asyncio import to_thread
from datetime import date
from typing import Optional
from supabase import Client
import logging

logger = logging.getLogger(__name__)

TASK_COLOR = "#a855f7"
STUDY_COLOR = "#6366f1"
STUDY_SLOT = ("09:00", "10:00")


class ItemRepository:
    """Handle dashboard_items database operations."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def create_item(
        self,
        user_id: str,
        item_type: str,
        title: str,
        item_date: date,
        importance: int,
        description: Optional[str] = None,
        color: str = TASK_COLOR,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> dict:
        """Create a task or study item."""
        try:
            data = {
                "user_id": user_id,
                "type": item_type,
                "title": title,
                "description": description,
                "date": item_date.isoformat(),
                "importance": importance,
                "color": color,
            }
            if item_type == "study":
                data.update({
                    "start_time": start_time,
                    "end_time": end_time,
                    "subject": subject,
                })

            response = await to_thread(
                lambda: self.supabase.table("dashboard_items").insert(data).execute()
            )
            return response.data[0] if response.data else None

        except Exception as e:
            logger.error(f"Error creating {item_type} item: {e}")
            raise
