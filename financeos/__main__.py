"""Serve the API with uvicorn: ``python -m financeos``."""
from __future__ import annotations

import uvicorn

from financeos.core.config import get_settings


def main() -> None:
    server = get_settings().server
    # Handlers come from financeos.core.log, not uvicorn's default config.
    uvicorn.run(
        "financeos.main:app",
        host=server.host,
        port=server.port,
        reload=server.reload,
        log_config=None,
    )


if __name__ == "__main__":
    main()
