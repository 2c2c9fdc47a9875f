"""PlainWiki FastAPI application."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from urllib.parse import quote

from fastapi import APIRouter, Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from plainwiki.config import Settings
from plainwiki.core.errors import (
    ArticleExists,
    ArticleNotFound,
    EmptyName,
    InvalidPattern,
    InvalidTitle,
    StorageError,
    WikiError,
)
from plainwiki.core.i18n import available_languages, load_catalog
from plainwiki.core.indexer import UNTAGGED, build_sitemap, build_tag_index
from plainwiki.core.renderer import MarkupRenderer
from plainwiki.core.search import search_articles
from plainwiki.core.storage import ArticleStorage
from plainwiki.web import (
    current_language,
    flash,
    pop_flashes,
    set_language,
    translator,
)

logger = logging.getLogger(__name__)

templates_path = Path(__file__).parent / "templates"
static_path = Path(__file__).parent / "static"

templates = Jinja2Templates(directory=str(templates_path))


def timestamp_filter(dt: datetime | None) -> str:
    """Format a modification time for display."""
    if dt is None:
        return ""
    return dt.strftime("%Y-%m-%d %H:%M")


templates.env.filters["timestamp"] = timestamp_filter


@dataclass
class Wiki:
    """Everything a request needs, built once per application."""

    settings: Settings
    storage: ArticleStorage
    renderer: MarkupRenderer

    @classmethod
    def from_settings(cls, settings: Settings) -> "Wiki":
        return cls(
            settings=settings,
            storage=ArticleStorage(settings.data_dir, settings.index_title),
            renderer=MarkupRenderer(
                settings.multimarkdown_command, settings.multimarkdown_timeout
            ),
        )

    def article_exists(self, title: str) -> bool:
        """Synchronous existence check (for the wiki link callback)."""
        try:
            return self.storage.resolve(title).is_file()
        except WikiError:
            return False

    async def render(self, title: str, text: str) -> str:
        """Render in a worker thread; the external filter blocks."""
        return await run_in_threadpool(
            self.renderer.render, title, text, self.article_exists
        )


def get_wiki(request: Request) -> Wiki:
    return request.app.state.wiki


def article_url(title: str) -> str:
    return "/" + quote(title, safe="")


def edit_url(title: str) -> str:
    if not title:
        return "/edit"
    return "/edit/" + quote(title, safe="")


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=302)


# Template context helper
def get_context(request: Request, **kwargs) -> dict:
    """Create base context for templates."""
    wiki = get_wiki(request)
    return {
        "request": request,
        "app_title": wiki.settings.app_title,
        "index_title": wiki.settings.index_title,
        "language": current_language(request),
        "languages": [
            (code, load_catalog(code).get("language_name", code))
            for code in available_languages()
        ],
        "flashes": pop_flashes(request),
        "_": translator(request),
        **kwargs,
    }


def render_error(request: Request, status_code: int, message_key: str) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "error.html",
        get_context(request, status_code=status_code, message_key=message_key),
        status_code=status_code,
    )


async def not_found_handler(request: Request, exc: WikiError) -> HTMLResponse:
    logger.info("%s %s: %s", request.method, request.url.path, exc)
    return render_error(request, 404, "error_not_found")


async def storage_error_handler(request: Request, exc: StorageError) -> HTMLResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return render_error(request, 500, "error_server")


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> HTMLResponse:
    if exc.status_code == 404:
        return render_error(request, 404, "error_not_found")
    return render_error(request, exc.status_code, "error_server")


router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def home(wiki: Wiki = Depends(get_wiki)):
    """Create the index page on first run and send the client there."""
    await wiki.storage.ensure_index()
    return redirect(article_url(wiki.settings.index_title))


# ========== Editing ==========


def edit_form(
    request: Request,
    title: str,
    content: str,
    errors: list[str] | None = None,
    exists: bool = False,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "edit.html",
        get_context(
            request, title=title, content=content, errors=errors or [], exists=exists
        ),
    )


@router.get("/edit", response_class=HTMLResponse)
@router.get("/edit/{title}", response_class=HTMLResponse)
async def edit_article(request: Request, title: str = "", wiki: Wiki = Depends(get_wiki)):
    """Edit form, prefilled with the current text when the article exists."""
    content = ""
    exists = False
    if title:
        try:
            article = await wiki.storage.read(title)
            content, exists = article.content, True
        except ArticleNotFound:
            pass
    return edit_form(request, title, content, exists=exists)


async def save_article(
    request: Request, wiki: Wiki, title: str, content: str
) -> HTMLResponse | RedirectResponse:
    _ = translator(request)
    errors = []
    if not title.strip():
        errors.append(_("title_required"))
    if not content.strip():
        errors.append(_("text_required"))
    if errors:
        return edit_form(request, title, content, errors)

    try:
        article = await wiki.storage.write(title, content)
    except (EmptyName, InvalidTitle):
        return edit_form(request, title, content, [_("invalid_title", title=title)])
    except StorageError as e:
        return edit_form(
            request, title, content, [_("save_failed", title=e.title), str(e)]
        )

    flash(request, _("saved", title=article.title))
    return redirect(article_url(article.title))


@router.post("/edit", response_class=HTMLResponse)
async def save_new_article(
    request: Request,
    title: str = Form(""),
    article: str = Form(""),
    wiki: Wiki = Depends(get_wiki),
):
    """Save the new-article form."""
    return await save_article(request, wiki, title, article)


@router.post("/edit/{title}", response_class=HTMLResponse)
async def save_existing_article(
    request: Request,
    title: str,
    article: str = Form(""),
    wiki: Wiki = Depends(get_wiki),
):
    """Save an article."""
    return await save_article(request, wiki, title, article)


@router.api_route("/delete/{title}", methods=["GET", "POST", "DELETE"])
async def delete_article(request: Request, title: str, wiki: Wiki = Depends(get_wiki)):
    """Delete an article."""
    name = wiki.storage.resolve(title).name
    await wiki.storage.delete(name)
    flash(request, translator(request)("deleted", title=name))
    return redirect("/")


@router.post("/rename")
async def rename_article(
    request: Request,
    src: str = Form(""),
    dst: str = Form(""),
    wiki: Wiki = Depends(get_wiki),
):
    """Rename an article. Problems go back to the edit form as flash messages."""
    _ = translator(request)
    try:
        info = await wiki.storage.rename(src, dst)
    except EmptyName:
        flash(request, _("rename_names_required"), "error")
    except InvalidTitle as e:
        flash(request, _("invalid_title", title=e.title), "error")
    except ArticleExists as e:
        flash(request, _("already_exists", title=e.title), "error")
    except ArticleNotFound as e:
        flash(request, _("not_found", title=e.title), "error")
    except StorageError:
        flash(request, _("rename_failed", title=src), "error")
    else:
        flash(request, _("renamed", src=src, dst=info.title))
        return redirect(article_url(info.title))
    return redirect(edit_url(src))


@router.post("/preview", response_class=HTMLResponse)
async def preview_article(
    title: str = Form(""),
    article: str = Form(""),
    wiki: Wiki = Depends(get_wiki),
):
    """Render the editor's text without saving it."""
    if not title or not article:
        return HTMLResponse("")
    return HTMLResponse(await wiki.render(title, article))


# ========== Search & Navigation ==========


async def search_results(request: Request, wiki: Wiki, query: str):
    _ = translator(request)
    try:
        result = await search_articles(
            wiki.storage, query, wiki.settings.max_query_length
        )
    except InvalidPattern as e:
        logger.info("Rejected search pattern %r: %s", query, e.reason)
        return templates.TemplateResponse(
            request,
            "search.html",
            get_context(
                request,
                query=query,
                titles=[],
                error=_("invalid_pattern", reason=e.reason),
            ),
        )

    if result.unique:
        return redirect(article_url(result.unique))

    return templates.TemplateResponse(
        request,
        "search.html",
        get_context(request, query=query, titles=result.titles, error=None),
    )


@router.get("/search", response_class=HTMLResponse)
async def search_page(request: Request, q: str = "", wiki: Wiki = Depends(get_wiki)):
    """Search titles and texts."""
    return await search_results(request, wiki, q)


@router.get("/search/{query}", response_class=HTMLResponse)
async def search_path(request: Request, query: str, wiki: Wiki = Depends(get_wiki)):
    """Search with the query in the path."""
    return await search_results(request, wiki, query)


@router.get("/sitemap", response_class=HTMLResponse)
async def sitemap_page(request: Request, wiki: Wiki = Depends(get_wiki)):
    """Articles grouped by age."""
    buckets = await build_sitemap(wiki.storage)
    return templates.TemplateResponse(
        request, "sitemap.html", get_context(request, buckets=buckets)
    )


@router.get("/tags", response_class=HTMLResponse)
async def tags_page(request: Request, wiki: Wiki = Depends(get_wiki)):
    """Articles grouped by tag."""
    index = await build_tag_index(wiki.storage)
    return templates.TemplateResponse(
        request,
        "tags.html",
        get_context(request, tag_index=index, untagged_label=UNTAGGED),
    )


@router.get("/set_language")
@router.get("/set_language/{language}")
async def change_language(request: Request, language: str = ""):
    """Remember the language in the session and go back."""
    if not set_language(request, language):
        flash(
            request,
            translator(request)("unknown_language", language=language),
            "error",
        )
    return redirect(request.headers.get("referer") or "/")


# ========== Articles ==========


@router.get("/raw/{title}", response_class=PlainTextResponse)
async def raw_article(title: str, wiki: Wiki = Depends(get_wiki)):
    """Source text of an article."""
    article = await wiki.storage.read(title)
    return PlainTextResponse(article.content)


@router.get("/{title}", response_class=HTMLResponse)
async def view_article(request: Request, title: str, wiki: Wiki = Depends(get_wiki)):
    """View an article."""
    article = await wiki.storage.read(title)
    html_content = await wiki.render(article.title, article.content)
    return templates.TemplateResponse(
        request,
        "view.html",
        get_context(request, article=article, html_content=html_content),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around one set of settings."""
    settings = settings or Settings()
    app = FastAPI(title=settings.app_title, debug=settings.debug)
    app.state.wiki = Wiki.from_settings(settings)
    logger.info("Serving articles from %s", settings.data_dir)

    app.add_middleware(SessionMiddleware, secret_key=settings.secret_key)
    app.add_exception_handler(ArticleNotFound, not_found_handler)
    app.add_exception_handler(InvalidTitle, not_found_handler)
    app.add_exception_handler(EmptyName, not_found_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)

    app.mount("/static", StaticFiles(directory=str(static_path)), name="static")
    app.include_router(router)
    return app
