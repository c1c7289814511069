from datetime import datetime, timezone

from fastapi import APIRouter, Request

from config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    settings = get_settings()
    ledgers = request.app.state.ledgers
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
        "records": {kind: ledger.count() for kind, ledger in ledgers.items()},
    }
