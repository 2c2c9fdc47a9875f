"""Unit tests for the sitemap and tag index."""

import os
from datetime import datetime, timedelta

import pytest

from plainwiki.core.indexer import (
    UNTAGGED,
    bucket_articles,
    build_sitemap,
    build_tag_index,
    extract_tags,
)
from plainwiki.core.models import ArticleInfo
from plainwiki.core.storage import ArticleStorage

NOW = datetime(2026, 6, 1, 12, 0, 0)


def aged(title: str, days: float) -> ArticleInfo:
    return ArticleInfo(title=title, modified=NOW - timedelta(days=days))


@pytest.fixture
def storage(tmp_path):
    return ArticleStorage(tmp_path)


def set_age(path, days: float) -> None:
    stamp = (datetime.now() - timedelta(days=days)).timestamp()
    os.utime(path, (stamp, stamp))


# ============================================================
# Sitemap buckets
# ============================================================


class TestBucketArticles:
    def test_ten_days_is_older_than_a_week(self):
        buckets = bucket_articles([aged("a", 10)], now=NOW)
        assert [b.label for b in buckets] == ["older_7_days"]

    def test_fresh_article_is_recent(self):
        buckets = bucket_articles([aged("a", 0.5)], now=NOW)
        assert [b.label for b in buckets] == ["recent"]

    def test_future_article_is_recent(self):
        buckets = bucket_articles([aged("a", -3)], now=NOW)
        assert [b.label for b in buckets] == ["recent"]

    def test_exactly_on_threshold(self):
        buckets = bucket_articles([aged("a", 30)], now=NOW)
        assert [b.label for b in buckets] == ["older_1_month"]

    def test_very_old_article(self):
        buckets = bucket_articles([aged("a", 4000)], now=NOW)
        assert [b.label for b in buckets] == ["older_5_years"]

    @pytest.mark.parametrize(
        "days, label",
        [
            (6, "recent"),
            (8, "older_7_days"),
            (45, "older_1_month"),
            (100, "older_3_months"),
            (200, "older_6_months"),
            (400, "older_1_year"),
            (800, "older_2_years"),
            (2000, "older_5_years"),
        ],
    )
    def test_each_bucket(self, days, label):
        buckets = bucket_articles([aged("a", days)], now=NOW)
        assert buckets[0].label == label

    def test_order_and_empty_buckets_omitted(self):
        articles = [aged("old", 400), aged("new", 1), aged("newer", 0.1), aged("mid", 10)]
        buckets = bucket_articles(articles, now=NOW)
        assert [b.label for b in buckets] == ["recent", "older_7_days", "older_1_year"]
        assert buckets[0].titles == ["newer", "new"]

    def test_no_articles(self):
        assert bucket_articles([], now=NOW) == []


class TestBuildSitemap:
    @pytest.mark.asyncio
    async def test_excludes_index(self, storage, tmp_path):
        await storage.ensure_index()
        await storage.write("notes", "text")
        set_age(tmp_path / "notes", 10)
        buckets = await build_sitemap(storage)
        assert len(buckets) == 1
        assert buckets[0].label == "older_7_days"
        assert buckets[0].titles == ["notes"]


# ============================================================
# Tags
# ============================================================


class TestExtractTags:
    def test_multiple_tags_on_one_line(self):
        assert extract_tags("Some text\n:todo:urgent:\n") == {"todo", "urgent"}

    def test_single_tag(self):
        assert extract_tags(":ideas:") == {"ideas"}

    def test_surrounding_whitespace(self):
        assert extract_tags("   :a:b_c:d-e:  \n") == {"a", "b_c", "d-e"}

    def test_tags_from_several_lines(self):
        assert extract_tags(":a:\ntext\n:b:\n") == {"a", "b"}

    def test_not_alone_on_line(self):
        assert extract_tags("see :todo: later") == set()

    def test_uppercase_not_a_tag(self):
        assert extract_tags(":Todo:") == set()

    def test_empty_tokens_ignored(self):
        assert extract_tags("::\n:a::b:") == {"a", "b"}

    def test_no_tags(self):
        assert extract_tags("plain text\nwith lines") == set()

    def test_crlf_lines(self):
        assert extract_tags("x\r\n:todo:\r\n") == {"todo"}


class TestBuildTagIndex:
    @pytest.mark.asyncio
    async def test_groups_articles(self, storage):
        await storage.write("b.md", ":todo:urgent:\ntext")
        await storage.write("a.md", "text\n:todo:")
        await storage.write("plain", "no tags here")
        index = await build_tag_index(storage)
        assert list(index.tags) == ["todo", "urgent"]
        assert index.tags["todo"] == ["a.md", "b.md"]
        assert index.tags["urgent"] == ["b.md"]
        assert index.untagged == ["plain"]

    @pytest.mark.asyncio
    async def test_untagged_only(self, storage):
        await storage.write("notes", "hello")
        index = await build_tag_index(storage)
        assert index.tags == {}
        assert index.untagged == ["notes"]

    @pytest.mark.asyncio
    async def test_excludes_index(self, storage):
        await storage.ensure_index()
        index = await build_tag_index(storage)
        assert index.tags == {}
        assert index.untagged == []

    def test_untagged_label(self):
        assert UNTAGGED == ":untagged"
