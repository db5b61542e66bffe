"""
Entry point for running procwatch via `python -m procwatch`.

Starts the FastAPI server with uvicorn.
"""

import uvicorn

from .config import settings
from .logs import configure_logging


def main():
    """Run the procwatch server."""
    settings.ensure_dirs()
    configure_logging()
    uvicorn.run(
        "procwatch.api:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
