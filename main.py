import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

import accounts
import carts
import catalog
import chat
import order_routes
import sliders
from config import CORS_ORIGINS, ENABLE_SCHEDULER, PORT
from database import ensure_indexes, get_db
from errors import register_exception_handlers
from logging_config import bind_request_context, clear_request_context, configure_logging, get_logger
from maintenance import run_daily_sweep

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_indexes()
    accounts.ensure_admin()
    sweeper = asyncio.create_task(run_daily_sweep()) if ENABLE_SCHEDULER else None
    logger.info("storefront_started", scheduler=ENABLE_SCHEDULER)
    yield
    if sweeper:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper


app = FastAPI(title="Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def request_context(request: Request, call_next):
    clear_request_context()
    bind_request_context(method=request.method, path=request.url.path)
    return await call_next(request)


app.include_router(accounts.auth_router)
app.include_router(accounts.users_router)
app.include_router(catalog.router)
app.include_router(sliders.router)
app.include_router(carts.router)
app.include_router(order_routes.router)
app.include_router(chat.router)


# Health
@app.get("/")
def read_root():
    return {"message": "Storefront backend running"}


@app.get("/api/test")
def test_database():
    try:
        collections = get_db().list_collection_names()
        return {"backend": "ok", "db": "ok", "collections": collections}
    except Exception as e:
        return {"backend": "ok", "db": f"error: {str(e)[:80]}"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
