from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.config import get_settings
from app.errors import ValidationError
from app.gateways.sandbox import SandboxGateway
from app.schemas.responses import ErrorResponse
from app.store.factory import build_store
from app.utils.logging import configure_logging, get_logger

log = get_logger("app.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    app.state.settings = settings
    app.state.store = build_store(settings)
    app.state.gateway = SandboxGateway()
    log.info(
        "Ledger started",
        extra={"store_backend": settings.store_backend, "app_env": settings.app_env},
    )
    yield


app = FastAPI(
    title="Card Transaction Ledger API",
    description="Records card verifications and payments and reports them alongside gateway history",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    body = ErrorResponse(error="validation_error", detail=str(exc), fields=exc.errors)
    return JSONResponse(status_code=422, content=body.model_dump())


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "card-transaction-ledger"}


from app.routers import payments, transactions  # noqa: E402
app.include_router(payments.router, prefix="/api/v1", tags=["payments"])
app.include_router(transactions.router, prefix="/api/v1/transactions", tags=["transactions"])
