"""WSGI entry point for the KYCtrust API."""

from __future__ import annotations

import os

from dotenv import load_dotenv

from kyctrust import create_app

load_dotenv()

app = create_app()


if __name__ == "__main__":
    app.run(
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "5000")),
    )
