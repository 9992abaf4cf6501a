import logging
import time
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

# Load environment variables from .env file before anything else
load_dotenv()

from ticketdesk.core.config import settings
from ticketdesk.core.logging import setup_logging, request_id_ctx
from ticketdesk.core.errors import PolicyError, MissingRequiredFields
from ticketdesk.core.db import init_models
from ticketdesk.core.redis import redis_manager
from ticketdesk.api.router import api_router
from ticketdesk.api.deps import get_store
from ticketdesk.modules.access.seed import seed_rule_store


setup_logging()
app = FastAPI(title=settings.APP_NAME)
logger = logging.getLogger(__name__)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id_ctx.set(request.headers.get("x-request-id", "-"))
    start_time = time.time()

    response = await call_next(request)

    process_time = (time.time() - start_time) * 1000
    logger.info(
        f"Request: {request.method} {request.url.path} - Response: {response.status_code} - Time: {process_time:.2f}ms"
    )
    return response

@app.exception_handler(PolicyError)
async def policy_error_handler(request: Request, exc: PolicyError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
    content = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, MissingRequiredFields):
        content["fields"] = exc.fields
    return JSONResponse(status_code=exc.status_code, content=content)

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Unhandled exception for request {request.method} {request.url.path}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "An internal server error occurred."},
    )


@app.on_event("startup")
async def on_startup():
    await init_models()
    if settings.ROUTING_CURSOR_PROVIDER == "redis":
        await redis_manager.connect()
    if settings.SEED_ON_STARTUP:
        async for store in get_store():
            await seed_rule_store(store)

@app.on_event("shutdown")
async def on_shutdown():
    await redis_manager.close()


app.include_router(api_router, prefix=settings.API_PREFIX)
