import logging
import re
from typing import Iterable


_SECRET_PARAMS = re.compile(
    r"\b(pin|secret|token|password|key)=[^\s&,]+", re.IGNORECASE
)


class RedactingFilter(logging.Filter):
    """Redact claim PINs and other secret-bearing fields from log records.

    A PIN together with the handle is enough to claim a pseudo-address entry,
    so PINs never reach the logs.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = str(record.getMessage())
            msg = re.sub(
                r"(Authorization:?)\s+(?:(?:Bearer|Basic)\s+)?\S+", r"\1 ***", msg, flags=re.IGNORECASE
            )
            msg = _SECRET_PARAMS.sub(r"\1=***", msg)
            record.msg = msg
            record.args = ()
        except Exception:
            pass
        return True


def setup_logging(
    level=logging.INFO,
    loggers: Iterable[str] = ("gumdrop_api", "gumdrop_cli", "uvicorn", "uvicorn.access"),
) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level)
    f = RedactingFilter()
    for handler in logging.getLogger().handlers:
        handler.addFilter(f)
    for name in loggers:
        lg = logging.getLogger(name)
        lg.setLevel(level)
        lg.addFilter(f)
