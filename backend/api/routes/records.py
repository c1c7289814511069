"""Record CRUD and queries. One router per record kind, built by make_router()."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import JSONResponse

from api.deps import ledger_for
from api.helpers import record_list
from codec import U64_MAX
from store import RECORD_KINDS, Ledger

logger = logging.getLogger(__name__)

RecordId = Annotated[int, Path(ge=0, le=U64_MAX)]


def make_router(kind: str, prefix: str) -> APIRouter:
    record_cls, payload_cls, _, _ = RECORD_KINDS[kind]
    router = APIRouter(prefix=prefix, tags=[f"{kind}s"])
    LedgerDep = Annotated[Ledger, Depends(ledger_for(kind))]

    # Fixed paths first so they are not captured by /{record_id}.

    @router.get("")
    async def list_records(ledger: LedgerDep):
        return JSONResponse(record_list(ledger.list_all()))

    @router.get("/count")
    async def count_records(ledger: LedgerDep):
        return JSONResponse({"count": ledger.count()})

    @router.get("/range")
    async def records_in_range(
        ledger: LedgerDep,
        start: int = Query(ge=0, le=U64_MAX),
        end: int = Query(ge=0, le=U64_MAX),
    ):
        """Records whose date field is within [start, end], both ends inclusive."""
        return JSONResponse(record_list(ledger.range(start, end)))

    @router.get("/above")
    async def records_above(ledger: LedgerDep, threshold: float = Query(...)):
        """Records whose amount field is strictly greater than threshold."""
        return JSONResponse(record_list(ledger.above(threshold)))

    @router.get("/page")
    async def records_page(ledger: LedgerDep, page: int = 1, per_page: int = 10):
        """1-indexed page in id order. page or per_page below 1 is rejected."""
        body = record_list(ledger.paginate(page, per_page))
        body.update({"page": page, "per_page": per_page})
        return JSONResponse(body)

    @router.get("/sorted")
    async def records_sorted(ledger: LedgerDep):
        """All records by amount field, highest first; ties by ascending id."""
        return JSONResponse(record_list(ledger.sorted_desc()))

    @router.get("/sum")
    async def records_sum(ledger: LedgerDep):
        return JSONResponse({"sum": ledger.sum(), "field": record_cls.AMOUNT_FIELD})

    @router.get("/{record_id}")
    async def get_record(record_id: RecordId, ledger: LedgerDep):
        return JSONResponse(ledger.get(record_id).model_dump())

    @router.post("")
    async def create_record(payload: payload_cls, ledger: LedgerDep):
        record = ledger.create(payload)
        return JSONResponse(record.model_dump(), status_code=201)

    @router.put("/{record_id}")
    async def update_record(record_id: RecordId, payload: payload_cls, ledger: LedgerDep):
        return JSONResponse(ledger.update(record_id, payload).model_dump())

    @router.delete("/{record_id}")
    async def delete_record(record_id: RecordId, ledger: LedgerDep):
        return JSONResponse(ledger.delete(record_id).model_dump())

    return router


expenses_router = make_router("expense", "/api/expenses")
votes_router = make_router("vote", "/api/votes")
