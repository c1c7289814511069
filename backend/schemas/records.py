"""Stored record models. Each class declares its binary LAYOUT and designated fields."""

from typing import ClassVar, Optional

from pydantic import BaseModel, Field

import codec
from codec import U64_MAX


class StoredRecord(BaseModel):
    """
    Common shape of every stored record.

    Subclasses set:
      KIND          short name used for partitions, routes and messages
      LAYOUT        field -> codec kind, in encoding order (covers every field)
      TEXT_FIELDS   required text fields, checked in this order
      AMOUNT_FIELD  positive number used by threshold, sort and sum
      DATE_FIELD    non-zero timestamp used by range queries
    """

    KIND: ClassVar[str] = ""
    LAYOUT: ClassVar[dict[str, str]] = {}
    TEXT_FIELDS: ClassVar[tuple[str, ...]] = ()
    AMOUNT_FIELD: ClassVar[str] = ""
    DATE_FIELD: ClassVar[str] = ""

    id: int = Field(ge=0, le=U64_MAX)
    created_at: int = Field(ge=0, le=U64_MAX)
    updated_at: Optional[int] = Field(default=None, ge=0, le=U64_MAX)

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs):
        super().__pydantic_init_subclass__(**kwargs)
        if "LAYOUT" in cls.__dict__:
            codec.check_layout(cls)


class Expense(StoredRecord):
    KIND: ClassVar[str] = "expense"
    LAYOUT: ClassVar[dict[str, str]] = {
        "id": "u64",
        "description": "str",
        "amount": "f64",
        "date": "u64",
        "created_at": "u64",
        "updated_at": "opt_u64",
    }
    TEXT_FIELDS: ClassVar[tuple[str, ...]] = ("description",)
    AMOUNT_FIELD: ClassVar[str] = "amount"
    DATE_FIELD: ClassVar[str] = "date"

    description: str
    amount: float
    date: int = Field(ge=0, le=U64_MAX)  # when the expense occurred


class Vote(StoredRecord):
    KIND: ClassVar[str] = "vote"
    LAYOUT: ClassVar[dict[str, str]] = {
        "id": "u64",
        "proposal": "str",
        "voter": "str",
        "weight": "f64",
        "cast_at": "u64",
        "created_at": "u64",
        "updated_at": "opt_u64",
    }
    TEXT_FIELDS: ClassVar[tuple[str, ...]] = ("proposal", "voter")
    AMOUNT_FIELD: ClassVar[str] = "weight"
    DATE_FIELD: ClassVar[str] = "cast_at"

    proposal: str
    voter: str
    weight: float
    cast_at: int = Field(ge=0, le=U64_MAX)
