"""Run the check-in API server. From the project root: python web/run_api.py (or league-api once installed)."""
import sys
from pathlib import Path

# league/ and config.py live at the project root
_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_root))

import uvicorn

import config


def main() -> None:
    uvicorn.run(
        "web.api.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=config.API_RELOAD,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
