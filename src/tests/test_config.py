"""Unit tests for application configuration."""

from pathlib import Path
from unittest.mock import patch

from plainwiki.config import Settings


class TestSettings:
    def test_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            s = Settings()
            assert s.data_dir == Path("data/articles")
            assert s.debug is False
            assert s.app_title == "PlainWiki"
            assert s.index_title == "index.md"
            assert s.default_language == "en"
            assert s.multimarkdown_command == "multimarkdown"
            assert s.multimarkdown_timeout is None

    def test_from_env(self):
        env = {
            "PLAINWIKI_DATA_DIR": "/tmp/wiki",
            "PLAINWIKI_DEBUG": "true",
            "PLAINWIKI_APP_TITLE": "MyWiki",
            "PLAINWIKI_INDEX_TITLE": "index",
            "PLAINWIKI_MULTIMARKDOWN_TIMEOUT": "2.5",
            "PLAINWIKI_PORT": "9000",
        }
        with patch.dict("os.environ", env, clear=True):
            s = Settings()
            assert s.data_dir == Path("/tmp/wiki")
            assert s.debug is True
            assert s.app_title == "MyWiki"
            assert s.index_title == "index"
            assert s.multimarkdown_timeout == 2.5
            assert s.port == 9000

    def test_explicit_values_win(self):
        with patch.dict("os.environ", {"PLAINWIKI_DATA_DIR": "/tmp/env"}, clear=True):
            s = Settings(data_dir=Path("/tmp/explicit"))
            assert s.data_dir == Path("/tmp/explicit")
