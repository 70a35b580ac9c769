"""healthapp entrypoint.

Run with:
  python -m healthapp
"""

import uvicorn

from healthapp.app import configure_logging
from healthapp.config import Settings


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(
        "healthapp.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
