"""
HTTP entry point for Pocketbook.

Run with:
    uvicorn app.main:app --reload
or:
    python app/main.py

The web client talks to this API; authentication happens in the
gateway in front of it, which forwards the user's id as X-User-Id.
"""

import os

import uvicorn

from pocketbook.api import create_app
from pocketbook.config import get_settings


app = create_app()


if __name__ == "__main__":
    settings = get_settings().app
    uvicorn.run(
        app,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_level="debug" if settings.debug_mode else "info",
    )
