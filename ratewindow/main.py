import os

import uvicorn

from ratewindow.core.app_factory import create_app

app = create_app()


def run() -> None:
    """Serve the app with uvicorn (``ratewindow`` console script)."""
    uvicorn.run(
        "ratewindow.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )
