"""FastAPI dependencies for routes."""

from fastapi import Request

from store import Ledger


def ledger_for(kind: str):
    """Dependency factory: the app's ledger for `kind`. Use as Depends(ledger_for("expense"))."""

    def get_ledger(request: Request) -> Ledger:
        return request.app.state.ledgers[kind]

    return get_ledger
