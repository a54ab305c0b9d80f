import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from splitledger.config import config
from splitledger.db import engine, init_db
from splitledger.errors import IntegrityError, LedgerError, StorageError
from splitledger.routes.dashboard import router as dashboard_router
from splitledger.routes.expense import router as expense_router
from splitledger.routes.group import router as group_router
from splitledger.routes.settlement import router as settlement_router
from splitledger.services.idempotency import reap_stale_claims

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Split Ledger")

# Session middleware; the session cookie is issued by the login front end
app.add_middleware(SessionMiddleware, secret_key=config.SECRET_KEY)

# include routers
app.include_router(group_router)
app.include_router(expense_router)
app.include_router(settlement_router)
app.include_router(dashboard_router)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if isinstance(exc, (IntegrityError, StorageError)):
        logging.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    return JSONResponse(exc.to_body(), status_code=exc.status_code)


@app.get("/ping")
def health_check():
    return {"status": "healthy"}


@app.on_event("startup")
def on_startup():
    init_db()
    reap_stale_claims(engine)
