"""Data models for PlainWiki."""

from datetime import datetime

from pydantic import BaseModel, Field


class ArticleInfo(BaseModel):
    """Directory listing entry: a title and its modification time."""

    title: str
    modified: datetime


class Article(ArticleInfo):
    """An article with its text loaded."""

    content: str


class SitemapBucket(BaseModel):
    """Articles whose age falls into one range of the sitemap."""

    label: str
    titles: list[str] = Field(default_factory=list)


class TagIndex(BaseModel):
    """Articles grouped by the tags found in their text."""

    tags: dict[str, list[str]] = Field(default_factory=dict)
    untagged: list[str] = Field(default_factory=list)


class SearchResult(BaseModel):
    """Titles matching a search query."""

    query: str
    titles: list[str] = Field(default_factory=list)

    @property
    def unique(self) -> str | None:
        """The only matching title, when exactly one article matched."""
        if len(self.titles) == 1:
            return self.titles[0]
        return None
