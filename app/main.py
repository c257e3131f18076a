from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes.accounts import router as accounts_router
from app.api.routes.admin import router as admin_router
from app.api.routes.assets import router as assets_router
from app.api.routes.grants import router as grants_router
from app.core.config import DEFAULT_BOOTSTRAP_API_KEY, get_settings
from app.core.database import init_db
from app.core.errors import LedgerError
from app.core.logging import configure_logging

settings = get_settings()
configure_logging(settings.debug)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.environment.lower() == "production" and settings.bootstrap_admin_api_key == DEFAULT_BOOTSTRAP_API_KEY:
        raise RuntimeError("BOOTSTRAP_ADMIN_API_KEY must be set in production")
    init_db()
    yield


app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(accounts_router)
app.include_router(grants_router)
app.include_router(assets_router)
app.include_router(admin_router)


@app.exception_handler(LedgerError)
async def ledger_error_handler(_: Request, exc: LedgerError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
