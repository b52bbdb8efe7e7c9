from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from chatbot_engine.database import get_db
from chatbot_engine.schemas.conversation import ConversationResponse, RatingRequest
from chatbot_engine.services.conversation_service import complete_conversation, rate_conversation

router = APIRouter(prefix="/conversations", tags=["conversations"])

STATUS_BY_ERROR_CODE = {"not_found": 404, "invalid_state": 409}


def _raise_for(result) -> None:
    raise HTTPException(status_code=STATUS_BY_ERROR_CODE.get(result.error_code, 400), detail=result.error)


@router.post("/{conversation_id}/complete", response_model=ConversationResponse)
def complete(conversation_id: UUID, db: Session = Depends(get_db)):
    result = complete_conversation(db, conversation_id)
    if not result.ok:
        _raise_for(result)
    return result.value


@router.post("/{conversation_id}/rating", response_model=ConversationResponse)
def rate(conversation_id: UUID, request: RatingRequest, db: Session = Depends(get_db)):
    try:
        result = rate_conversation(db, conversation_id, request.rating, request.feedback)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    if not result.ok:
        _raise_for(result)
    return result.value
