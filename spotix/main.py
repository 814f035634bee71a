# spotix/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from spotix import config
from spotix.database import init_db
from spotix.errors import DomainError
from spotix.routers import discounts, payments, paystack_webhook, referrals, tickets, votes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Spotix settlement service")

app.include_router(paystack_webhook.router)
app.include_router(payments.router)
app.include_router(tickets.router)
app.include_router(votes.router)
app.include_router(discounts.router)
app.include_router(referrals.router)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "kind": exc.code.value},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "kind": "INTERNAL"},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.on_event("startup")
async def startup():
    config.validate_config()
    await init_db()
    logger.info("Spotix settlement service started, DB ready")
