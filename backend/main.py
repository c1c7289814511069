"""
Tally Backend API
Expense and vote records: CRUD, range/threshold queries, paging, sorting, sums.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.helpers import error_body
from api.routes import expenses_router, health_router, votes_router
from config import Settings, get_settings
from errors import InvalidInput, NotFound, TallyError, Unrecoverable
from store import open_ledgers

logger = logging.getLogger(__name__)

_STATUS = {
    NotFound: 404,
    InvalidInput: 400,
}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.ledgers = open_ledgers(settings.TALLY_DATA_DIR, fsync=settings.TALLY_FSYNC)
        logger.info("Data directory: %s", settings.TALLY_DATA_DIR.resolve())
        yield

    app = FastAPI(title=settings.APP_TITLE, version=settings.APP_VERSION, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TallyError)
    async def tally_error(request: Request, exc: TallyError):
        if isinstance(exc, Unrecoverable):
            logger.error(
                "%s %s aborted: %s", request.method, request.url.path, exc.msg, exc_info=exc
            )
            return JSONResponse(error_body(exc), status_code=500)
        return JSONResponse(error_body(exc), status_code=_STATUS.get(type(exc), 400))

    app.include_router(health_router)
    app.include_router(expenses_router)
    app.include_router(votes_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
