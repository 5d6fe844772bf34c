from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from pymongo.errors import DuplicateKeyError, PyMongoError

from matchmaker.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate driver failures into E_STORAGE_UNAVAILABLE.

    Duplicate keys are left alone; callers decide what a collision means.
    """
    try:
        yield
    except DuplicateKeyError:
        raise
    except PyMongoError as e:
        logger.error("Storage failure during {}: {}", operation, e)
        raise AppError(
            errcode=AppErrorCode.E_STORAGE_UNAVAILABLE,
            errmesg="Storage is unavailable",
            status_code=HttpStatusCode.SERVICE_UNAVAILABLE,
        ) from e
