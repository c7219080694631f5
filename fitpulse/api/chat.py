import json
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import Field
from sqlalchemy.orm import Session

from fitpulse.api.users import get_user_or_404
from fitpulse.core.context_builder import build_coaching_context
from fitpulse.core.rate_limit import AI_RATE_LIMIT, limiter
from fitpulse.core.safety import detect_urgent_flags, emergency_reply, has_injury_topic, injury_caution_text
from fitpulse.core.schema import CamelModel
from fitpulse.db.models import ChatMessage
from fitpulse.db.session import get_db
from fitpulse.services.llm import LLMClient, LLMNotConfiguredError, LLMRequestError, get_llm_client
from fitpulse.services.storage import utc_now

router = APIRouter(prefix="/api/chat", tags=["chat"])
logger = logging.getLogger("uvicorn.error")

CHAT_SYSTEM_INSTRUCTION = (
    "You are FitPulse, a supportive personal fitness coach. "
    "Use the user's readiness, plan, and nutrition context to give short, practical guidance. "
    "Never diagnose medical conditions. "
    'Return strict JSON: {"reply": string}.'
)


class ChatRequest(CamelModel):
    user_id: int
    message: str = Field(min_length=1, max_length=2000)


class ChatResponse(CamelModel):
    reply: str
    safety_flags: list[str] = Field(default_factory=list)


class ChatMessageItem(CamelModel):
    id: int
    user_id: int
    role: str
    content: str
    created_at: datetime


def _store_turn(db: Session, user_id: int, message: str, reply: str) -> None:
    now = utc_now()
    db.add(ChatMessage(user_id=user_id, role="user", content=message, created_at=now))
    db.add(ChatMessage(user_id=user_id, role="assistant", content=reply, created_at=now))
    db.commit()


@router.post("", response_model=ChatResponse)
@limiter.limit(AI_RATE_LIMIT)
def chat(
    request: Request,
    payload: ChatRequest,
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
) -> ChatResponse:
    user = get_user_or_404(db, payload.user_id)
    message = payload.message.strip()
    if not message:
        raise HTTPException(status_code=422, detail="Message must not be blank")

    flags = detect_urgent_flags(message)
    if flags:
        reply = emergency_reply()
        _store_turn(db, user.id, message, reply)
        return ChatResponse(reply=reply, safety_flags=flags)

    context = build_coaching_context(db, user)
    prompt = (
        f"User context:\n{json.dumps(context, default=str)}\n\n"
        f"User message:\n{message}"
    )
    try:
        result = llm.generate_json(prompt, system_instruction=CHAT_SYSTEM_INSTRUCTION, task_type="chat")
    except LLMNotConfiguredError as exc:
        raise HTTPException(status_code=503, detail="AI coach is not configured") from exc
    except (LLMRequestError, ValueError) as exc:
        logger.exception("chat_llm_error user_id=%s detail=%s", user.id, str(exc))
        raise HTTPException(status_code=502, detail="Failed to get a coaching reply. Please try again.") from exc

    reply = str(result.get("reply") or "").strip()
    if not reply:
        raise HTTPException(status_code=502, detail="Failed to get a coaching reply. Please try again.")
    if has_injury_topic(message):
        reply = f"{reply}\n\n{injury_caution_text()}"
        flags = ["injury_topic"]
    _store_turn(db, user.id, message, reply)
    return ChatResponse(reply=reply, safety_flags=flags)


@router.get("/user/{user_id}", response_model=list[ChatMessageItem])
def list_messages(
    user_id: int,
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
) -> list[ChatMessageItem]:
    """Most recent messages for the user, returned oldest first."""
    get_user_or_404(db, user_id)
    rows = (
        db.query(ChatMessage)
        .filter(ChatMessage.user_id == user_id)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
        .all()
    )
    return [ChatMessageItem.model_validate(row) for row in reversed(rows)]
