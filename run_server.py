#!/usr/bin/env python3
"""Run the FieldOps web server."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from fieldops.config import get_server_config
from fieldops.utils.log import setup_logging


def main():
    import uvicorn

    setup_logging()
    cfg = get_server_config()

    print(f"""
    FieldOps Server
      URL:        http://{cfg.host}:{cfg.port}
      API Docs:   http://{cfg.host}:{cfg.port}/docs
      Hot Reload: {cfg.reload}
    """)

    uvicorn.run(
        "server.app:app",
        host=cfg.host,
        port=cfg.port,
        reload=cfg.reload,
    )


if __name__ == "__main__":
    main()
