# File: common/exceptions/error_handlers.py

from typing import Any, Dict, Literal, Optional

import sentry_sdk

from keysweep.common.logging.logger import ContextLogger, default_logger

ErrorType = Literal["general", "scan", "delete", "dbsize"]


def report_error(
    message: str,
    *,
    exc: BaseException,
    context: Dict[str, Any],
    error_type: ErrorType = "general",
    log: Optional[ContextLogger] = None,
):
    """
    Log a contained failure and forward it to Sentry.

    Sentry capture is a no-op until ``sentry_sdk.init`` has been called.
    """
    log = log or default_logger
    log.error(message, extra={**context, "type": error_type, "error": str(exc)}, exc_info=True)
    sentry_sdk.capture_exception(exc)
