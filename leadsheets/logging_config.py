# leadsheets/logging_config.py
import logging
import logging.config
from pathlib import Path

from leadsheets.config import Settings


def build_logging_config(log_dir: Path, level: str = "INFO") -> dict:
    log_file = log_dir / "app.log"
    access_file = log_dir / "access.log"
    return {
        "version": 1,
        "disable_existing_loggers": False,

        "formatters": {
            "standard": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
            "access": {
                "format": "%(asctime)s | %(levelname)s | uvicorn.access | %(message)s",
            },
        },

        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": level,
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "filename": str(log_file),
                "maxBytes": 5 * 1024 * 1024,  # 5 MB
                "backupCount": 5,
                "encoding": "utf-8",
                "level": level,
            },
            "access_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "access",
                "filename": str(access_file),
                "maxBytes": 5 * 1024 * 1024,
                "backupCount": 5,
                "encoding": "utf-8",
                "level": "INFO",
            },
        },

        "loggers": {
            "uvicorn": {
                "handlers": ["console", "file"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": ["console", "file"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["access_file"],
                "level": "INFO",
                "propagate": False,
            },
            # googleapiclient logs every discovery/cache miss at INFO
            "googleapiclient": {
                "handlers": ["console", "file"],
                "level": "WARNING",
                "propagate": False,
            },
            "leadsheets": {
                "handlers": ["console", "file"],
                "level": level,
                "propagate": False,
            },
        },

        "root": {
            "handlers": ["console", "file"],
            "level": level,
        },
    }


def setup_logging(settings: Settings) -> None:
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(settings.log_dir, settings.log_level))
    logging.getLogger("leadsheets").info("Logging initialized (level=%s, dir=%s)", settings.log_level, settings.log_dir)
