"""Pydantic schemas for stored records and API request bodies."""

from .records import Expense, StoredRecord, Vote
from .requests import ExpensePayload, VotePayload

__all__ = [
    "Expense",
    "ExpensePayload",
    "StoredRecord",
    "Vote",
    "VotePayload",
]
