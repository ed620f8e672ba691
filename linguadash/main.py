# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Server entry point.

Example:
    $ linguadash
    $ API_PORT=9000 API_RELOAD=true linguadash
"""

import uvicorn

from linguadash.core.config import get_settings


def run() -> None:
    """Serve the API with uvicorn using the API_* settings."""
    settings = get_settings()
    uvicorn.run(
        "linguadash.api.app:create_app",
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        workers=1 if settings.api.reload else settings.api.workers,
        reload=settings.api.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
