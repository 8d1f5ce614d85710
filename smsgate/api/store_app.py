"""HTTP surface of the store process: per-recipient message history."""
from __future__ import annotations

import logging

from fastapi import APIRouter, FastAPI, status
from fastapi.responses import JSONResponse

from smsgate import __version__
from smsgate.api.errors import RETRIEVAL_ERROR, register_exception_handlers
from smsgate.factory import StoreContext
from smsgate.tools.persistence import metrics as persistence_metrics
from smsgate.utils.schemas import MessageWithStatusModel, UserMessagesModel

logger = logging.getLogger("smsgate.api.store")


def create_store_app(ctx: StoreContext) -> FastAPI:
    app = FastAPI(title="smsgate-store", version=__version__, redoc_url=None)
    register_exception_handlers(app)
    router = APIRouter()

    @router.get("/v1/user/{user_id}/messages", response_model=UserMessagesModel)
    def user_messages(user_id: str):
        try:
            messages, count = ctx.retrieval.get_all(user_id)
        except Exception:
            logger.exception("retrieval failed for %s", user_id)
            return JSONResponse({"error": RETRIEVAL_ERROR}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return UserMessagesModel(
            user_id=user_id,
            messages=[MessageWithStatusModel(message=m.body, status=m.status) for m in messages],
            count=count,
        )

    @router.get("/healthz")
    def healthz() -> dict:
        consumer = ctx.consumer
        return {
            "status": "ok",
            "service": "store",
            "partitions": sorted(consumer.owned_partitions) if consumer else [],
            "persistence": persistence_metrics.snapshot(),
        }

    app.include_router(router)
    return app


__all__ = ["create_store_app"]
