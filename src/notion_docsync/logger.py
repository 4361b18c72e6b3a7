import json
import logging
import os
import sys

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per record with ts, level, logger and msg keys.

    Exception tracebacks are added under "exc".
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _formatter(fmt: str, with_name: bool) -> logging.Formatter:
    if fmt == "json":
        return JsonFormatter(datefmt=_DATE_FORMAT)
    pattern = "[%(asctime)s] [%(levelname)s] "
    if with_name:
        pattern += "%(name)s "
    return logging.Formatter(pattern + "%(message)s", datefmt=_DATE_FORMAT)


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure root logging for a sync run.

    Records go to stderr so that stdout stays free for the report, and
    additionally to *log_file* when given.

    Args:
        debug: Force DEBUG level.
        log_file: Optional file that receives the same records.
        debug_format: "text" (default) or "json".
        level: Level name from the config file; ``LOG_LEVEL`` wins over it.

    Environment variables:
        LOG_LEVEL: DEBUG, INFO, WARNING or ERROR.  Default: INFO.
    """
    level_name = (os.getenv("LOG_LEVEL") or level or "INFO").upper()
    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, level_name, logging.INFO)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(_formatter(debug_format, with_name=False))
    handlers: list[logging.Handler] = [stderr_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(_formatter(debug_format, with_name=True))
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    # Keep HTTP internals quiet unless debugging
    if log_level != logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)
        logging.getLogger("charset_normalizer").setLevel(logging.WARNING)
