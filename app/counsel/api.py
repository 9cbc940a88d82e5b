"""HTTP routes for the chat backend.

Provides:
- POST /chat - one round trip; {message, sessionId?, conversationHistory?}
- GET /sessions - transcript summaries, newest first
- GET /sessions/{session_id} - one full transcript

All failures come back as {"error": "..."}: 400 for bad input, 404 for
unknown sessions, 500 (generic message, details logged) for everything else.
"""
from __future__ import annotations

import logging
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from .config import AppConfig, build_controller, configure_logging
from .controller import SessionController
from .errors import CounselError, UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


# ===== Request Models =====

class HistoryItem(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    """Chat submission. message is validated by the controller so a missing
    field reports the same 400 as an empty one."""
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    conversation_history: Optional[list[HistoryItem]] = Field(
        default=None, alias="conversationHistory"
    )


def get_controller(request: Request) -> SessionController:
    return request.app.state.controller


# ===== Endpoints =====

@router.post("/chat")
def chat(
    payload: ChatRequest,
    controller: SessionController = Depends(get_controller),
):
    history = [h.model_dump() for h in payload.conversation_history or []]
    try:
        reply = controller.chat(
            payload.message,
            session_id=payload.session_id,
            history=history,
        )
    except CounselError:
        raise
    except Exception as e:
        raise UpstreamError(f"Unexpected chat failure: {e}") from e
    return reply.to_dict()


@router.get("/sessions")
def list_sessions(controller: SessionController = Depends(get_controller)):
    return {"sessions": [s.to_dict() for s in controller.list_sessions()]}


@router.get("/sessions/{session_id}")
def get_session(
    session_id: str,
    controller: SessionController = Depends(get_controller),
):
    return {"session": controller.get_session(session_id).to_dict()}


# ===== Error translation =====

def _counsel_error(request: Request, exc: CounselError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("%s %s malformed body: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


def create_app(
    controller: Optional[SessionController] = None,
    config: Optional[AppConfig] = None,
) -> FastAPI:
    if controller is None:
        controller = build_controller(config or AppConfig.from_env())
    app = FastAPI(title="Counsel Chat")
    app.state.controller = controller
    app.include_router(router)
    app.add_exception_handler(CounselError, _counsel_error)
    app.add_exception_handler(RequestValidationError, _invalid_body)
    return app


def main() -> None:
    config = AppConfig.from_env()
    configure_logging(config.log_level)
    logger.info(
        "Starting chat API on %s:%d (persistence=%s)",
        config.host,
        config.port,
        config.persistence.value,
    )
    uvicorn.run(create_app(config=config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
