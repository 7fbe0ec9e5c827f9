"""Translation of domain errors into HTTP responses for the routers."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Type, TypeVar

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..services.errors import RecordNotFoundError, ValidationError

logger = logging.getLogger("tcoutil.api")

ModelT = TypeVar("ModelT")


@contextmanager
def http_errors(action: str) -> Iterator[None]:
    """Map service exceptions raised inside the block to ``HTTPException``.

    Validation failures become 400 with a machine-readable ``error`` code,
    missing records 404, and any storage failure 400 carrying its message.
    """
    try:
        yield
    except HTTPException:
        raise
    except ValidationError as exc:
        logger.info("%s rejected: %s", action, exc.message, extra={"error_code": exc.code})
        raise HTTPException(status_code=400, detail=exc.to_detail()) from exc
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("%s failed", action)
        raise HTTPException(status_code=400, detail=str(exc)) from exc


async def get_or_404(db: AsyncSession, model: Type[ModelT], identifier: Any) -> ModelT:
    """Fetch a record by primary key or raise ``RecordNotFoundError``."""
    record = await db.get(model, identifier)
    if record is None:
        raise RecordNotFoundError(model.__name__, identifier)
    return record
