"""Run the Dispensa ASGI application with uvicorn."""

from __future__ import annotations

import os

import uvicorn


def main(host: str | None = None, port: int | None = None, reload: bool | None = None) -> None:
    """Entry point used by ``dispensa serve`` and ``python -m dispensa.server.run``."""

    host = host or os.environ.get("DISPENSA_SERVER_HOST", "127.0.0.1")
    port = port or int(os.environ.get("DISPENSA_SERVER_PORT", "8000"))
    if reload is None:
        reload = os.environ.get("RELOAD") == "1"

    uvicorn.run(
        "dispensa.server.app:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    main()
