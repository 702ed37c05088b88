"""Logging setup shared by the Tart client and the tartctl command.

As a library, tart_client only installs a NullHandler: an application that
embeds the client decides where records go. The tartctl entry point calls
configure_logging(), which prints records to stderr like this:

    INFO [2026-02-25 10:02:54] tart_client.readiness - VM is up and running

TART_CLIENT_LOG_LEVEL (a level name such as DEBUG) sets the initial level at
import time, so an embedding application can see every argv the client
builds without touching code.

The stderr handler sits behind a bounded queue drained by a listener thread.
A VM started with `tartctl run` logs every serial console line at DEBUG for
as long as it is up; when the terminal cannot keep pace, records are dropped
and the supervisor's pipes keep being read.
"""

import contextlib
import logging
import logging.handlers
import os
import queue
from collections.abc import Mapping

import click

LIBRARY_LOGGER_NAME: str = "tart_client"

LOG_LEVEL_ENV_VAR: str = "TART_CLIENT_LOG_LEVEL"

_FMT = "%(levelname)s [%(asctime)s] %(name)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Records buffered between the event loop and the terminal
_QUEUE_CAPACITY = 4096


def env_log_level(environ: Mapping[str, str] = os.environ) -> int | None:
    """Numeric level named by TART_CLIENT_LOG_LEVEL, or None if unset or unknown."""
    name = environ.get(LOG_LEVEL_ENV_VAR, "").strip().upper()
    value = logging.getLevelNamesMapping().get(name)
    # NOTSET would hand the decision back to the root logger
    return value or None


_library_logger = logging.getLogger(LIBRARY_LOGGER_NAME)
_library_logger.addHandler(logging.NullHandler())
if (_initial_level := env_log_level()) is not None:
    _library_logger.setLevel(_initial_level)


class _ClickHandler(logging.Handler):
    """Prints formatted records dimmed on stderr, below tartctl's own output.

    Called from the listener thread only.
    """

    def __init__(self) -> None:
        super().__init__()
        self.formatter = logging.Formatter(fmt=_FMT, datefmt=_DATEFMT)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            click.echo(click.style(self.format(record), dim=True), err=True)
        except BlockingIOError:
            pass  # non-blocking stderr is full; lose this record
        except Exception:  # noqa: BLE001
            self.handleError(record)


class _NonBlockingHandler(logging.handlers.QueueHandler):
    """Hands records to a listener thread; drops them when the queue is full."""

    def __init__(self) -> None:
        records: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=_QUEUE_CAPACITY)
        super().__init__(records)
        self._listener = logging.handlers.QueueListener(records, _ClickHandler(), respect_handler_level=False)
        self._listener.start()

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # Consumed in this process; the record needs no pickling
        return record

    def enqueue(self, record: logging.LogRecord) -> None:
        with contextlib.suppress(queue.Full):
            self.queue.put_nowait(record)

    def close(self) -> None:
        self._listener.stop()
        super().close()


def get_logger(name: str) -> logging.Logger:
    """Module logger under the tart_client hierarchy (pass __name__)."""
    return logging.getLogger(name)


def configure_logging(
    *,
    level: int | str | None = None,
    quiet: bool = False,
) -> None:
    """Send tart_client records to stderr, as tartctl does.

    Safe to call more than once: the stderr handler is attached a single
    time, and later calls only change the level. Handlers an application
    added itself are left alone.

    Args:
        level: Level name or number; replaces TART_CLIENT_LOG_LEVEL
        quiet: Only show errors, whatever level says
    """
    if not any(isinstance(h, _NonBlockingHandler) for h in _library_logger.handlers):
        _library_logger.addHandler(_NonBlockingHandler())

    if quiet:
        _library_logger.setLevel(logging.ERROR)
    elif level is not None:
        # Unknown level names raise ValueError
        _library_logger.setLevel(level)
