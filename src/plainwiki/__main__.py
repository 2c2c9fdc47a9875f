"""Run PlainWiki with uvicorn: ``python -m plainwiki``."""

import uvicorn

from plainwiki.config import Settings


def main() -> None:
    settings = Settings()
    uvicorn.run(
        "plainwiki.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
