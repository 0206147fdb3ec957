"""Development server entry point (``python -m moviepoa``)."""
from __future__ import annotations

from moviepoa import config
from moviepoa.startup import create_app


def main() -> None:
    app = create_app()
    app.run(host=config.server_host(), port=config.server_port())


if __name__ == "__main__":
    main()
