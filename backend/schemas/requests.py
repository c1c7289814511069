"""Request body models for Tally API. Payloads carry domain fields only, never an id."""

from pydantic import BaseModel, Field

from codec import U64_MAX


class ExpensePayload(BaseModel):
    description: str
    amount: float
    date: int = Field(ge=0, le=U64_MAX)


class VotePayload(BaseModel):
    proposal: str
    voter: str
    weight: float
    cast_at: int = Field(ge=0, le=U64_MAX)
