"""Answer composition: extracted content + numbered footnotes → completion."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from aetherscribe.rag.llm import CompletionClient
from aetherscribe.scraper.models import ExtractedContent, Link


@dataclass
class ComposedAnswer:
    """What the chat endpoint returns: the answer and its reference list."""

    message: str
    references: List[str] = field(default_factory=list)


def format_references(links: Iterable[Link]) -> List[str]:
    """Render ``[n] url`` footnotes, numbered from 1 in harvest order."""
    return [f"[{i}] {link.url}" for i, link in enumerate(links, start=1)]


def build_context(content: ExtractedContent) -> str:
    """Join the page markdown and its footnote list into one context blob."""
    references = format_references(content.links)
    if not references:
        return content.markdown
    footnotes = "\n".join(references)
    return f"{content.markdown}\n\nFootnotes:\n{footnotes}"


def build_user_content(question: str, context: str | None = None) -> str:
    if context:
        return f"Context: {context}\n\nQuestion: {question}"
    return question


async def compose_answer(
    question: str,
    client: CompletionClient,
    content: ExtractedContent | None = None,
) -> ComposedAnswer:
    """Ask the completion service *question*, grounded in *content* when given.

    Without *content* the model answers from general knowledge and the
    reference list is empty.  With it, references mirror the harvested links
    in order, whether or not the model cited each one.
    """
    if content is None:
        text = await client.complete(build_user_content(question))
        return ComposedAnswer(message=text)

    text = await client.complete(build_user_content(question, build_context(content)))
    return ComposedAnswer(message=text, references=format_references(content.links))
