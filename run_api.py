#!/usr/bin/env python3
"""API server startup script."""

import sys
from pathlib import Path

# Add src to Python path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

if __name__ == "__main__":
    import uvicorn

    from backend.config.settings import get_settings

    settings = get_settings()

    # Factory import string so reload re-creates the app with fresh settings
    uvicorn.run(
        "web.main:create_app",
        factory=True,
        host=settings.server_host,
        port=settings.server_port,
        reload="--reload" in sys.argv,
        reload_dirs=[str(src_path)]
    )
