"""Chat endpoint.

Routes
------
POST /api/chat    Body: {"message": "...", "url": "https://..."?}
                  → {"message": "...", "references": ["[1] https://...", ...]}

Note: this router is mounted with prefix ``/api`` in ``app.py``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field, field_validator

from aetherscribe.api.deps import enforce_rate_limit, get_services
from aetherscribe.rag.chat import answer_question

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    url: Optional[str] = None

    @field_validator("url", mode="before")
    @classmethod
    def _blank_url_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ChatResponse(BaseModel):
    message: str
    references: list[str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/chat",
    response_model=ChatResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def chat_endpoint(body: ChatRequest, request: Request) -> ChatResponse:
    """Answer a question, optionally grounded in the page at ``url``.

    Extraction failures surface as 422 or degrade silently depending on
    ``ON_EXTRACTION_FAILURE``; see :func:`aetherscribe.rag.chat.answer_question`.
    """
    services = get_services(request)
    answer = await answer_question(
        body.message,
        client=services.llm,
        fetcher=services.fetcher,
        url=body.url,
        cache=services.cache,
        on_extraction_failure=services.config.on_extraction_failure,
    )
    return ChatResponse(message=answer.message, references=answer.references)
