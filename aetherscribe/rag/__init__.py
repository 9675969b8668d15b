"""Answer composition against the completion service."""

from aetherscribe.rag.chat import answer_question
from aetherscribe.rag.composer import ComposedAnswer, compose_answer, format_references
from aetherscribe.rag.llm import CompletionClient, build_chat_model

__all__ = [
    "ComposedAnswer",
    "CompletionClient",
    "answer_question",
    "build_chat_model",
    "compose_answer",
    "format_references",
]
