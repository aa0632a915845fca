"""Command-line entry point: serve the game over uvicorn."""

import uvicorn

from arena.server.settings import ArenaServerSettings


def main() -> None:  # pragma: no cover
    settings = ArenaServerSettings()
    uvicorn.run(
        "arena.server.app:get_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,  # get_app() installs structlog handlers on the root logger
    )


if __name__ == "__main__":  # pragma: no cover
    main()
