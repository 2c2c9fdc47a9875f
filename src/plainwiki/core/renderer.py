"""Markup rendering: plain text, Markdown, or an external MultiMarkdown filter."""

import enum
import html
import logging
import re
import subprocess
from typing import Callable
from urllib.parse import quote
from xml.etree.ElementTree import Element

from markdown import Markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import InlineProcessor, SimpleTagInlineProcessor

from plainwiki.core.errors import ExternalFilterError

logger = logging.getLogger(__name__)


# Pattern for wiki links: [[Title]] or [[Title|Display Text]]
WIKI_LINK_PATTERN = r"\[\[([^\]|]+)(?:\|([^\]]+))?\]\]"

# Pattern for strikethrough: ~~text~~
# Group 2 must contain the text (SimpleTagInlineProcessor expectation)
STRIKETHROUGH_PATTERN = r"(~~)(.*?)~~"


class MarkupKind(enum.Enum):
    """How an article is turned into HTML, chosen by its title suffix."""

    PLAIN = "plain"
    MARKDOWN = "md"
    EXTERNAL = "mmd6"

    @classmethod
    def for_title(cls, title: str) -> "MarkupKind":
        _, dot, suffix = title.rpartition(".")
        if dot and suffix == "md":
            return cls.MARKDOWN
        if dot and suffix == "mmd6":
            return cls.EXTERNAL
        return cls.PLAIN


class StrikethroughExtension(Extension):
    """Markdown extension for ~~strikethrough~~ text."""

    def extendMarkdown(self, md: Markdown) -> None:
        """Add strikethrough pattern to markdown parser."""
        md.inlinePatterns.register(
            SimpleTagInlineProcessor(STRIKETHROUGH_PATTERN, "del"),
            "strikethrough",
            50,
        )


class WikiLinkInlineProcessor(InlineProcessor):
    """Inline processor for wiki links."""

    def __init__(self, pattern: str, md: Markdown, exists: Callable[[str], bool]):
        super().__init__(pattern, md)
        self.exists = exists

    def handleMatch(self, m: re.Match, data: str) -> tuple[Element | None, int, int]:
        """Convert wiki link match to HTML anchor element."""
        title = m.group(1).strip()
        display_text = m.group(2)
        if display_text:
            display_text = display_text.strip()
        else:
            display_text = title

        el = Element("a")
        el.text = display_text
        el.set("href", "/" + quote(title))

        if self.exists(title):
            el.set("class", "wiki-link")
        else:
            el.set("class", "wiki-link wiki-link-missing")

        return el, m.start(0), m.end(0)


class WikiLinkExtension(Extension):
    """Markdown extension for links between articles."""

    def __init__(self, exists: Callable[[str], bool] | None = None, **kwargs):
        self.exists = exists or (lambda x: True)
        super().__init__(**kwargs)

    def extendMarkdown(self, md: Markdown) -> None:
        """Add wiki link pattern to markdown parser."""
        md.inlinePatterns.register(
            WikiLinkInlineProcessor(WIKI_LINK_PATTERN, md, self.exists),
            "wiki_link",
            75,
        )


def create_parser(exists: Callable[[str], bool] | None = None) -> Markdown:
    """Create a Markdown parser with wiki link support.

    Args:
        exists: Callback to check if an article exists.
                Used to style links to missing articles differently.

    Returns:
        Configured Markdown parser instance.
    """
    return Markdown(
        extensions=[
            "extra",  # abbreviations, attr_list, def_list, fenced_code, footnotes, tables
            "sane_lists",
            "smarty",
            "toc",
            "pymdownx.tasklist",
            StrikethroughExtension(),
            WikiLinkExtension(exists=exists),
        ]
    )


def render_plain(text: str) -> str:
    """Escape text and wrap it in a preformatted block."""
    return "<pre>" + html.escape(text, quote=False) + "</pre>"


def render_markdown(text: str, exists: Callable[[str], bool] | None = None) -> str:
    """Convert Markdown with wiki links to HTML."""
    return create_parser(exists).convert(text)


class MarkupRenderer:
    """Turns article text into HTML according to the article's title suffix.

    Rendering never fails: when the external filter cannot be run the raw
    text is returned instead.
    """

    def __init__(
        self,
        multimarkdown_command: str = "multimarkdown",
        timeout: float | None = None,
    ):
        self.multimarkdown_command = multimarkdown_command
        self.timeout = timeout

    def render(
        self,
        title: str,
        text: str,
        exists: Callable[[str], bool] | None = None,
    ) -> str:
        """Render an article to HTML."""
        kind = MarkupKind.for_title(title)
        if kind is MarkupKind.MARKDOWN:
            return render_markdown(text, exists)
        if kind is MarkupKind.EXTERNAL:
            try:
                return self.run_filter(title, text)
            except ExternalFilterError as e:
                logger.error("Rendering %r as plain text: %s", title, e)
                return text
        return render_plain(text)

    def run_filter(self, title: str, text: str) -> str:
        """Pipe text through the external MultiMarkdown command."""
        try:
            proc = subprocess.run(
                [self.multimarkdown_command],
                input=text.encode("utf-8"),
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise ExternalFilterError(
                f"{self.multimarkdown_command} timed out after {self.timeout}s"
            ) from e
        except OSError as e:
            raise ExternalFilterError(
                f"cannot run {self.multimarkdown_command}: {e}"
            ) from e

        stderr = proc.stderr.decode("utf-8", errors="replace").strip()
        if proc.returncode != 0:
            raise ExternalFilterError(
                f"{self.multimarkdown_command} exited with status "
                f"{proc.returncode}: {stderr}"
            )
        if stderr:
            logger.warning(
                "%s reported for %r: %s", self.multimarkdown_command, title, stderr
            )
        return proc.stdout.decode("utf-8", errors="replace")
