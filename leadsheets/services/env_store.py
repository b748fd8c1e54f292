from __future__ import annotations

import logging
from pathlib import Path

from dotenv import dotenv_values, set_key

log = logging.getLogger(__name__)


def save_env_value(env_file: Path, key: str, value: str, *, overwrite: bool = False, create: bool = False) -> bool:
    """
    Write KEY=value into a dotenv file. Returns True when the file changed.

    Without `create`, a missing file is left alone. Without `overwrite`, an
    existing key (even an empty one) is never replaced.
    """
    env_file = Path(env_file)
    if not env_file.exists():
        if not create:
            log.info("%s not found, skipping automatic %s save", env_file, key)
            return False
        env_file.parent.mkdir(parents=True, exist_ok=True)
        env_file.touch()

    if not overwrite and key in dotenv_values(env_file):
        return False

    set_key(str(env_file), key, value, quote_mode="never")
    log.info("Saved %s to %s", key, env_file)
    return True


def persist_spreadsheet_id(env_file: Path, spreadsheet_id: str) -> bool:
    return save_env_value(env_file, "SPREADSHEET_ID", spreadsheet_id)
