"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List


@dataclass
class RawPage:
    """Fully rendered HTML for a single URL fetch.  Never persisted."""

    url: str
    html: str
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class Link:
    """A harvested outbound link, cited by its position in the list."""

    url: str

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url}


@dataclass
class ExtractedContent:
    """Normalised markdown plus harvested links — the unit that gets cached."""

    markdown: str
    links: List[Link] = field(default_factory=list)
    # Set by the pipeline when served from the cache; never serialised.
    from_cache: bool = field(default=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the cached JSON shape (``{"mainContent": {...}}``)."""
        return {
            "mainContent": {
                "markdown": self.markdown,
                "links": [link.to_dict() for link in self.links],
            }
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractedContent":
        main = data["mainContent"]
        return cls(
            markdown=main["markdown"],
            links=[Link(url=item["url"]) for item in main.get("links", [])],
        )
