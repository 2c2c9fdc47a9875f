"""Regular expression search over article titles and contents."""

import logging
import re

from plainwiki.core.errors import InvalidPattern
from plainwiki.core.models import SearchResult
from plainwiki.core.storage import ArticleStorage

logger = logging.getLogger(__name__)


def compile_query(query: str, max_length: int = 256) -> re.Pattern:
    """Compile a user query as a case-insensitive pattern.

    Raises:
        InvalidPattern: the query is too long or is not a valid expression.
    """
    if len(query) > max_length:
        raise InvalidPattern(query, f"longer than {max_length} characters")
    try:
        return re.compile(query, re.IGNORECASE)
    except re.error as e:
        raise InvalidPattern(query, str(e)) from e


async def search_articles(
    storage: ArticleStorage, query: str, max_length: int = 256
) -> SearchResult:
    """Find articles whose title or text matches query.

    Titles are checked first so that matching articles are never opened.
    Files that cannot be read are skipped.
    """
    if not query:
        return SearchResult(query=query)

    pattern = compile_query(query, max_length)
    titles = []
    for article in await storage.list_articles():
        if pattern.search(article.title):
            titles.append(article.title)
            continue
        text = await storage.read_text(article.title)
        if text is None:
            continue
        if pattern.search(text):
            titles.append(article.title)

    logger.debug("Search %r matched %d articles", query, len(titles))
    return SearchResult(query=query, titles=titles)
