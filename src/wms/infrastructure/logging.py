import sys
from logging.config import dictConfig


def setup_logging(level: str = "INFO") -> None:
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stderr,
                    "formatter": "default",
                },
            },
            # SQLAlchemy echoes every statement at INFO
            "loggers": {
                "sqlalchemy.engine": {
                    "level": "WARNING",
                },
            },
            "root": {
                "level": level,
                "handlers": ["console"],
            },
        }
    )
