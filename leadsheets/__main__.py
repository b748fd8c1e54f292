"""Run the lead capture API with uvicorn: ``python -m leadsheets``."""
from __future__ import annotations

import uvicorn

from leadsheets.config import Settings


def main() -> None:
    settings = Settings.from_env()
    uvicorn.run("leadsheets.main:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":  # pragma: no cover - manual entry point
    main()
