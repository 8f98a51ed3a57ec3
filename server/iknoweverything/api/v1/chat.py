from fastapi import APIRouter, Depends, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging

from iknoweverything.api.deps import get_provider
from iknoweverything.config import get_settings
from iknoweverything.core.auth import authenticate
from iknoweverything.core.errors import RateLimited, RelayError
from iknoweverything.core.ratelimit import chat_limiter
from iknoweverything.providers.base import ChatProvider
from iknoweverything.schemas.chat import ChatRequest, ChatResponse, ErrorResponse
from iknoweverything.services.relay import ChatRelay

router = APIRouter()
logger = logging.getLogger(__name__)


def _error(message: str, status_code: int, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=headers,
    )


async def chat_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Answer unparseable /chat bodies in the relay error shape; other routes keep FastAPI's 422."""
    if request.url.path.rstrip("/").endswith("/v1/chat"):
        logger.info("Rejected chat request body: %s", [e.get("type") for e in exc.errors()])
        return _error("Invalid request body", 400)
    return await request_validation_exception_handler(request, exc)


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 404: {"model": ErrorResponse},
               429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def chat(request: ChatRequest, http_request: Request, provider: ChatProvider = Depends(get_provider)):
    """Relay one user turn to the model and return its reply."""
    settings = get_settings()
    try:
        user = authenticate(http_request)
        chat_limiter.hit(user.id, settings.chat_rate_limit, settings.chat_rate_window_seconds)
        relay = ChatRelay(provider, history_limit=settings.history_limit)
        result = await relay.handle(user, request)
        return ChatResponse(response=result.response, conversationId=result.conversation_id)
    except RateLimited as e:
        return _error(e.message, e.status_code, headers={"Retry-After": str(e.retry_after)})
    except RelayError as e:
        if e.status_code >= 500:
            logger.exception("Error in chat relay: %s", e)
        else:
            logger.info("Chat request rejected (%d): %s", e.status_code, e)
        return _error(e.message, e.status_code)
    except Exception as e:
        logger.exception("Error in chat relay: %s", e)
        return _error(str(e) or "Internal server error", 500)
