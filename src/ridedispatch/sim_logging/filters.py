"""Log filters for credential masking and correlation ID injection."""

import logging
import re


class PIIFilter(logging.Filter):
    """Masks rider emails and bearer tokens in log messages.

    Tokens reach log lines through request headers and the WebSocket
    ``?token=`` query string.
    """

    EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+")
    BEARER_PATTERN = re.compile(r"(?i)\bbearer\s+[^\s,;\"']+")
    TOKEN_PARAM_PATTERN = re.compile(r"(?i)([?&]token=)[^&\s\"']+")

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            msg = record.msg
            if "@" in msg:
                msg = self.EMAIL_PATTERN.sub("[EMAIL]", msg)
            msg = self.BEARER_PATTERN.sub("Bearer [TOKEN]", msg)
            msg = self.TOKEN_PARAM_PATTERN.sub(r"\1[TOKEN]", msg)
            record.msg = msg
        return True


class DefaultCorrelationFilter(logging.Filter):
    """Adds default correlation_id if not present."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = "-"
        return True
