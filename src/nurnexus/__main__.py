"""Run the API with uvicorn: ``python -m nurnexus``."""

import os
import sys
import threading
from types import TracebackType

import structlog
import uvicorn

logger = structlog.get_logger()


def _log_and_exit(
    exc_type: type[BaseException],
    exc: BaseException,
    tb: TracebackType | None,
) -> None:
    logger.critical("fatal_exception", kind="uncaught_exception", exc_info=(exc_type, exc, tb))
    sys.exit(1)


def _thread_excepthook(args: threading.ExceptHookArgs) -> None:
    logger.critical(
        "fatal_exception",
        kind="uncaught_thread_exception",
        thread=args.thread.name if args.thread else None,
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
    )
    os._exit(1)


def main() -> None:
    from nurnexus.config import get_settings

    sys.excepthook = _log_and_exit
    threading.excepthook = _thread_excepthook

    settings = get_settings()
    uvicorn.run(
        "nurnexus.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),  # noqa: S104
        port=int(os.environ.get("PORT", "5000")),
        reload=settings.debug and settings.is_development,
        log_config=None,
    )


if __name__ == "__main__":
    main()
