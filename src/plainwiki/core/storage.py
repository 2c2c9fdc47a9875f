"""Storage of wiki articles as plain files in a single directory."""

import logging
import os
import re
from datetime import datetime
from pathlib import Path

from plainwiki.core.errors import (
    ArticleExists,
    ArticleNotFound,
    EmptyName,
    InvalidTitle,
    StorageError,
)
from plainwiki.core.models import Article, ArticleInfo

logger = logging.getLogger(__name__)

WELCOME_TEXT = """\
# Welcome to PlainWiki

This is the index page. It was created because the wiki was empty.

* Edit this page to change the welcome text.
* Create a new article from the *New article* link.
* Articles ending in `.md` are rendered as Markdown, articles ending in
  `.mmd6` go through MultiMarkdown, everything else is shown as plain text.
* Put a line like `:todo:ideas:` on its own to tag an article.
"""

SEPARATORS = re.compile(r"[/\\]")
NEWLINES = re.compile(r"\r\n|\r")


def sanitize_title(title: str) -> str:
    """Reduce a title to a bare file name.

    Only the last path segment is kept, so the result can never point
    outside the data directory. Names starting with a dot (including ``.``
    and ``..``) are rejected, since the listing skips hidden files.
    """
    name = SEPARATORS.split(title.replace("\x00", ""))[-1].strip()
    if name.startswith("."):
        raise InvalidTitle(title)
    return name


def normalize_newlines(content: str) -> str:
    """Convert line endings to LF and end the text with exactly one newline."""
    return NEWLINES.sub("\n", content).rstrip("\n") + "\n"


class ArticleStorage:
    """File based article storage.

    Every article is one file in ``base_path``, named exactly by its
    sanitized title. There is no locking: concurrent writers race and the
    last one wins.
    """

    def __init__(self, base_path: Path, index_title: str = "index.md"):
        self.base_path = base_path
        self.index_title = index_title
        self.base_path.mkdir(parents=True, exist_ok=True)

    def resolve(self, title: str) -> Path:
        """Get the full path for an article."""
        name = sanitize_title(title)
        if not name:
            raise EmptyName()
        return self.base_path / name

    def _info(self, name: str, path: Path) -> ArticleInfo:
        return ArticleInfo(
            title=name, modified=datetime.fromtimestamp(path.stat().st_mtime)
        )

    async def exists(self, title: str) -> bool:
        """Check if an article exists."""
        return self.resolve(title).is_file()

    async def read(self, title: str) -> Article:
        """Read an article."""
        path = self.resolve(title)
        if not path.is_file():
            raise ArticleNotFound(path.name)
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
            modified = datetime.fromtimestamp(path.stat().st_mtime)
        except FileNotFoundError as e:
            raise ArticleNotFound(path.name) from e
        except OSError as e:
            logger.error("Cannot read article %r: %s", path.name, e)
            raise StorageError(path.name, "read", e.strerror or str(e)) from e
        return Article(title=path.name, modified=modified, content=content)

    async def write(self, title: str, content: str) -> Article:
        """Write an article, creating it if needed."""
        path = self.resolve(title)
        text = normalize_newlines(content)
        try:
            path.write_text(text, encoding="utf-8", newline="\n")
            modified = datetime.fromtimestamp(path.stat().st_mtime)
        except OSError as e:
            logger.error("Cannot write article %r: %s", path.name, e)
            raise StorageError(path.name, "write", e.strerror or str(e)) from e
        logger.info("Saved article %r (%d bytes)", path.name, len(text))
        return Article(title=path.name, modified=modified, content=text)

    async def delete(self, title: str) -> None:
        """Delete an article."""
        path = self.resolve(title)
        if not path.is_file():
            raise ArticleNotFound(path.name)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise ArticleNotFound(path.name) from e
        except OSError as e:
            logger.error("Cannot delete article %r: %s", path.name, e)
            raise StorageError(path.name, "delete", e.strerror or str(e)) from e
        logger.info("Deleted article %r", path.name)

    async def rename(self, old_title: str, new_title: str) -> ArticleInfo:
        """Move an article to a new title.

        The destination must not exist yet; the source stays untouched
        when the rename is refused.
        """
        if not old_title or not new_title:
            raise EmptyName()
        source = self.resolve(old_title)
        target = self.resolve(new_title)
        if not source.is_file():
            raise ArticleNotFound(source.name)
        if target.exists():
            raise ArticleExists(target.name)
        try:
            os.rename(source, target)
            info = self._info(target.name, target)
        except OSError as e:
            logger.error(
                "Cannot rename article %r to %r: %s", source.name, target.name, e
            )
            raise StorageError(source.name, "rename", e.strerror or str(e)) from e
        logger.info("Renamed article %r to %r", source.name, target.name)
        return info

    async def list_articles(self) -> list[ArticleInfo]:
        """List all articles, including the index page, sorted by title."""
        articles = []
        try:
            entries = list(os.scandir(self.base_path))
        except OSError as e:
            logger.error("Cannot list %s: %s", self.base_path, e)
            raise StorageError(str(self.base_path), "list", e.strerror or str(e)) from e
        for entry in entries:
            if entry.name.startswith("."):
                continue
            try:
                if not entry.is_file():
                    continue
                modified = datetime.fromtimestamp(entry.stat().st_mtime)
            except OSError as e:
                # Removed between scandir() and stat()
                logger.warning("Skipping %r: %s", entry.name, e)
                continue
            articles.append(ArticleInfo(title=entry.name, modified=modified))
        return sorted(articles, key=lambda a: a.title)

    async def read_text(self, title: str) -> str | None:
        """Get the raw text of an article, or None if it cannot be read."""
        try:
            return self.resolve(title).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Cannot open %r: %s", title, e)
            return None

    async def ensure_index(self) -> bool:
        """Create the welcome page if the index article is missing.

        Returns True when the page was created.
        """
        if await self.exists(self.index_title):
            return False
        await self.write(self.index_title, WELCOME_TEXT)
        logger.info("Created index page %r", self.index_title)
        return True
