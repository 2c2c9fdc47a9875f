"""Computed views over the article directory: sitemap and tag index.

Both are rebuilt from the files on every call; nothing is cached.
"""

import logging
import re
from datetime import datetime, timedelta

from plainwiki.core.models import ArticleInfo, SitemapBucket, TagIndex
from plainwiki.core.storage import ArticleStorage

logger = logging.getLogger(__name__)

# (age in days, label key), youngest first
AGE_THRESHOLDS = [
    (0, "recent"),
    (7, "older_7_days"),
    (30, "older_1_month"),
    (91, "older_3_months"),
    (182, "older_6_months"),
    (365, "older_1_year"),
    (730, "older_2_years"),
    (1826, "older_5_years"),
]

TAG_LINE_PATTERN = re.compile(r"^\s*:([a-z0-9:_-]*):\s*$")

UNTAGGED = ":untagged"


def bucket_articles(
    articles: list[ArticleInfo], now: datetime | None = None
) -> list[SitemapBucket]:
    """Group articles by age.

    Each article lands in the oldest bucket whose age it has reached, so an
    article edited ten days ago is "older than 7 days" but not "older than
    1 month". Articles from the future count as recent.
    """
    now = now or datetime.now()
    buckets: dict[str, list[str]] = {label: [] for _, label in AGE_THRESHOLDS}

    for article in sorted(articles, key=lambda a: a.modified, reverse=True):
        age = now - article.modified
        label = AGE_THRESHOLDS[0][1]
        for days, candidate in reversed(AGE_THRESHOLDS):
            if age >= timedelta(days=days):
                label = candidate
                break
        buckets[label].append(article.title)

    return [
        SitemapBucket(label=label, titles=buckets[label])
        for _, label in AGE_THRESHOLDS
        if buckets[label]
    ]


async def build_sitemap(
    storage: ArticleStorage, now: datetime | None = None
) -> list[SitemapBucket]:
    """Sitemap of every article except the index page."""
    articles = [
        a for a in await storage.list_articles() if a.title != storage.index_title
    ]
    return bucket_articles(articles, now)


def extract_tags(text: str) -> set[str]:
    """Collect the tags from every ``:tag:tag:`` line of an article."""
    tags = set()
    for line in text.splitlines():
        match = TAG_LINE_PATTERN.match(line)
        if match:
            tags.update(t for t in match.group(1).split(":") if t)
    return tags


async def build_tag_index(storage: ArticleStorage) -> TagIndex:
    """Group every article except the index page by its tags."""
    tags: dict[str, set[str]] = {}
    untagged = []

    for article in await storage.list_articles():
        if article.title == storage.index_title:
            continue
        text = await storage.read_text(article.title)
        if text is None:
            continue
        found = extract_tags(text)
        if not found:
            untagged.append(article.title)
        for tag in found:
            tags.setdefault(tag, set()).add(article.title)

    return TagIndex(
        tags={tag: sorted(tags[tag]) for tag in sorted(tags)},
        untagged=sorted(untagged),
    )
