"""HTTP surface of the sender process: send endpoint and blocklist administration."""
from __future__ import annotations

import logging

from fastapi import APIRouter, FastAPI, status
from fastapi.responses import JSONResponse
import redis

import platform_monitoring
from smsgate import __version__
from smsgate.api.errors import SERVER_ERROR_RESULT, register_exception_handlers
from smsgate.factory import SenderContext
from smsgate.tools.blocklist.gate import BlocklistUnavailableError
from smsgate.utils.events import SendRequest
from smsgate.utils.schemas import BlocklistEntryModel, SmsRequestModel, SmsResponseModel

logger = logging.getLogger("smsgate.api.sender")


def _blocklist_unavailable(exc: BlocklistUnavailableError) -> JSONResponse:
    logger.error("blocklist unavailable: %s", exc)
    return JSONResponse({"error": "Blocklist unavailable"}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


def create_sender_app(ctx: SenderContext) -> FastAPI:
    app = FastAPI(title="smsgate-sender", version=__version__, redoc_url=None)
    register_exception_handlers(app)
    router = APIRouter()

    @router.post("/v1/sms/send", response_model=SmsResponseModel)
    def send_sms(body: SmsRequestModel):
        # ValidationError propagates to the 400 handler
        request = SendRequest.create(body.phoneNumber, body.message)
        try:
            result = ctx.dispatcher.dispatch(request)
        except BlocklistUnavailableError as e:
            logger.error("blocklist unavailable, refusing %s: %s", request.recipient, e)
            return JSONResponse({"result": SERVER_ERROR_RESULT}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
        except Exception:
            logger.exception("dispatch failed for %s", request.recipient)
            platform_monitoring.log_event("sender.dispatch.error", {"recipient": request.recipient}, level=logging.ERROR)
            return JSONResponse({"result": SERVER_ERROR_RESULT}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return SmsResponseModel(result=result)

    @router.get("/v1/blocklist/{phone}", response_model=BlocklistEntryModel)
    def get_block(phone: str):
        try:
            return BlocklistEntryModel(phoneNumber=phone, blocked=ctx.gate.is_blocked(phone))
        except BlocklistUnavailableError as e:
            return _blocklist_unavailable(e)

    @router.put("/v1/blocklist/{phone}", response_model=BlocklistEntryModel)
    def block(phone: str):
        try:
            ctx.gate.block(phone)
        except BlocklistUnavailableError as e:
            return _blocklist_unavailable(e)
        return BlocklistEntryModel(phoneNumber=phone, blocked=True)

    @router.delete("/v1/blocklist/{phone}", response_model=BlocklistEntryModel)
    def unblock(phone: str):
        try:
            ctx.gate.unblock(phone)
        except BlocklistUnavailableError as e:
            return _blocklist_unavailable(e)
        return BlocklistEntryModel(phoneNumber=phone, blocked=False)

    @router.get("/healthz")
    def healthz() -> dict:
        body = {"status": "ok", "service": "sender"}
        if ctx.redis is not None:
            try:
                body["redis"] = ctx.redis.ping()
            except redis.exceptions.RedisError as e:
                logger.warning("redis ping failed: %s", e)
                body.update(status="degraded", redis=False)
        return body

    app.include_router(router)
    return app


__all__ = ["create_sender_app"]
