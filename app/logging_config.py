"""
JSON-loggning för clamav-rest-proxy, en rad per post på stdout.

Tjänstens loggers ligger under "clamav_rest_proxy":
  - .ingest  : filnamnet som skannas, förfrågningar utan fil
  - .clamd   : anslutning till clamd, avkortade svar (WARNING)
  - .scanner : "DETECTION: Found <signatur>" och oanvändbara svar (WARNING),
               anslutningsfel och timeouts (ERROR)
  - .mime    : okänd filtyp (DEBUG)

Utöver message får varje post fälten timestamp, level, logger, service
("clamav-rest-proxy") och environment (ENVIRONMENT, default "production").
Nivån styrs av LOG_LEVEL. uvicorn loggar genom samma handler.
"""

import logging
import logging.config
import os

from pythonjsonlogger.jsonlogger import JsonFormatter  # type: ignore[import-untyped]

SERVICE_NAME = "clamav-rest-proxy"
_FMT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class _ProxyJsonFormatter(JsonFormatter):
    """Lägger till service och environment på varje post."""

    _service = SERVICE_NAME
    _environment = os.getenv("ENVIRONMENT", "production")

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["service"] = self._service
        log_record["environment"] = self._environment
        log_record["level"] = log_record.pop("levelname", record.levelname)
        log_record["logger"] = log_record.pop("name", record.name)


def setup_logging(level: str | None = None) -> None:
    """
    Konfigurera root logger, uvicorn och applikationens loggers med JSON-format.

    Anropas en gång vid start, innan uvicorn startas.
    level: t.ex. "DEBUG" eller "INFO" (default från LOG_LEVEL, annars "INFO").
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "handlers": {
                "json": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": "ext://sys.stdout",
                },
            },
            "formatters": {
                "json": {
                    "()": _ProxyJsonFormatter,
                    "fmt": _FMT,
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                    "rename_fields": {"asctime": "timestamp"},
                },
            },
            "root": {
                "handlers": ["json"],
                "level": log_level,
            },
            # uvicorn skriver via samma handler så all output blir JSON
            "loggers": {
                "uvicorn": {"handlers": ["json"], "level": log_level, "propagate": False},
                "uvicorn.error": {"handlers": ["json"], "level": log_level, "propagate": False},
                "uvicorn.access": {"handlers": ["json"], "level": log_level, "propagate": False},
                "clamav_rest_proxy": {"handlers": ["json"], "level": log_level, "propagate": False},
            },
        }
    )
