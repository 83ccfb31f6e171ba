import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel

from src.domain.exceptions import HashingError
from .error import ClientError, ServerError

logger = logging.getLogger(__name__)


async def handle_client_error(request: Request, exc: ClientError):
    error_dict = exc.base_error.to_dict()
    logger.warning(f"Client error: {exc.base_error.code} on {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content={"error": error_dict})


async def handle_server_error(request: Request, exc: ServerError):
    error_dict = {"code": exc.base_error.code, "message": "Internal server error"}
    logger.error(f"Server error: {exc.base_error.code}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": error_dict}
    )


async def handle_hashing_error(request: Request, exc: HashingError):
    logger.error(f"Hashing failure on {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}},
    )


async def purge_expired_tokens_periodically(services, interval_seconds: int):
    from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
    from src.depends import AsyncSessionLocal

    while True:
        await asyncio.sleep(interval_seconds)
        try:
            async with AsyncSessionLocal() as session:
                async with SqlAlchemyUnitOfWork(session) as uow:
                    await services.token_manager.purge_expired(uow.credentials)
                    await uow.commit()
        except Exception as e:
            logger.error(f"Expired token purge failed: {e}")


def create_app(ApplicationConfig, services=None) -> FastAPI:
    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from src.depends import build_auth_services, engine

    if services is None:
        services = build_auth_services(ApplicationConfig)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

        services.outbox.start()
        purge_task: Optional[asyncio.Task] = None
        if ApplicationConfig.TOKEN_PURGE_INTERVAL_SECONDS > 0:
            purge_task = asyncio.create_task(
                purge_expired_tokens_periodically(
                    services, ApplicationConfig.TOKEN_PURGE_INTERVAL_SECONDS
                )
            )
        logger.info("Auth service started")
        try:
            yield
        finally:
            if purge_task is not None:
                purge_task.cancel()
            await services.outbox.stop()
            await services.rate_limiter.close()
            logger.info("Auth service stopped")

    app = FastAPI(title="Auth Service", version="0.1.0", lifespan=lifespan)
    app.state.auth_services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from src.api.routes import auth, health_check

    app.include_router(health_check.router, tags=["Health"])
    app.include_router(auth.router, tags=["Authentication"])

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)
    app.add_exception_handler(HashingError, handle_hashing_error)

    return app
