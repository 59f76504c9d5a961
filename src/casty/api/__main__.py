# src/casty/api/__main__.py
from __future__ import annotations

import os

import uvicorn

from casty.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so CASTY_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (config is read at app creation)
    from casty.api.app import create_app

    host = os.getenv("CASTY_API_HOST", "127.0.0.1")
    port = int(os.getenv("CASTY_API_PORT", "8080"))

    uvicorn.run(create_app(), host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
