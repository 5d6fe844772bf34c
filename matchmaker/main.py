import time
import traceback
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from granian import Granian
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from matchmaker.api.dependency import get_matchmaker_service
from matchmaker.api.errors import app_error_handler, app_validation_exception_handler
from matchmaker.app_config import get_app_environ_config
from matchmaker.domain.liveness.sweeper import LivenessSweeper
from matchmaker.schemas.init_schemas import init_schema
from matchmaker.services.integrations.notifier import OwnerNotifier
from matchmaker.shared.api.utils import api_failure, init_logger, load_routes
from matchmaker.shared.storage.mongo import get_mongo_manager
from matchmaker.utils.app_errors import AppError, AppErrorCode

app_config = get_app_environ_config()


class HTTPLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore
        start_time = time.time()
        request_id = str(uuid.uuid4())[:8]

        logger.info(f"[{request_id}] {request.method} {request.url.path}")

        try:
            response = await call_next(request)

            process_time = (time.time() - start_time) * 1000
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} - "
                f"Status: {response.status_code} - "
                f"Duration: {process_time:.2f}ms"
            )

            return response

        except Exception as exc:
            process_time = (time.time() - start_time) * 1000

            logger.error(
                f"[{request_id}] Unhandled exception in {request.method} {request.url.path} - "
                f"Duration: {process_time:.2f}ms - "
                f"Error: {type(exc).__name__}: {exc}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            failure = api_failure(
                errcode=AppErrorCode.E_INTERNAL_ERROR.value,
                errmesg=f"Internal server error (request_id: {request_id})",
            )
            return ORJSONResponse(
                status_code=500,
                content=failure.model_dump(),
            )


@asynccontextmanager
async def lifespan(server: FastAPI):
    init_logger()

    logger.info("Application startup...")

    # Initialize MongoDB schemas and Beanie ODM
    await init_schema()

    service = get_matchmaker_service()

    notifier = OwnerNotifier(app_config.OWNER_NOTIFY_WEBHOOK_URL)
    if notifier.enabled:
        service.events.subscribe(notifier.on_event)
        logger.info("Owner notifications enabled")

    sweeper = LivenessSweeper(
        service,
        cleanup_interval=app_config.cleanup_interval,
        device_sweep_interval=app_config.device_sweep_interval,
    )
    sweeper.start()
    server.state.sweeper = sweeper

    yield

    logger.info("Application shutdown...")

    await sweeper.stop()
    service.events.unsubscribe(notifier.on_event)
    get_mongo_manager().close_all()


app = FastAPI(
    version="1.0",
    title="Matchmaker API",
    docs_url=None if not app_config.DEBUG else "/docs",
    redoc_url=None,
    openapi_url=None if not app_config.DEBUG else "/openapi.json",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(HTTPLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,  # type: ignore
    allow_origins=list(app_config.API_CORS_ORIGINS),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, app_validation_exception_handler)  # type: ignore
app.add_exception_handler(AppError, app_error_handler)  # type: ignore

load_routes(app)


def build_granian_kwargs():
    # One worker: sessions live in process memory
    kwargs = {
        "interface": "asgi",
        "address": app_config.API_HOST,
        "port": app_config.API_PORT,
        "workers": 1,
        "reload": app_config.DEBUG,
    }

    return kwargs


if __name__ == "__main__":
    granian_kwargs = build_granian_kwargs()
    Granian("matchmaker.main:app", **granian_kwargs).serve()
