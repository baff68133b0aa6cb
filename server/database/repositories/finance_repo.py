"""Finance repository for database operations."""
from asyncio import to_thread
from datetime import date
from decimal import Decimal
from supabase import Client
import logging

logger = logging.getLogger(__name__)


class FinanceRepository:
    """Handle transaction database operations."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    async def create_expense(
        self,
        user_id: str,
        amount: Decimal,
        category: str,
        transaction_date: date,
        description: str,
    ) -> dict:
        """Insert one expense transaction and return the stored row."""
        try:
            data = {
                "user_id": user_id,
                "type": "expense",
                "amount": float(amount),
                "category": category,
                "transaction_date": transaction_date.isoformat(),
                "description": description,
                "is_recurring": False,
            }

            response = await to_thread(
                lambda: self.supabase.table("transactions").insert(data).execute()
            )
            return response.data[0] if response.data else None

        except Exception as e:
            logger.error(f"Error creating expense: {e}")
            raise
