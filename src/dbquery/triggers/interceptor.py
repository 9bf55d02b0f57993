"""Log capture around trigger handler execution."""

import io
from contextlib import contextmanager, redirect_stderr, redirect_stdout
from pathlib import Path
from typing import Iterator

from dbquery.logging import get_logger
from dbquery.triggers.models import TriggerDescriptor

logger = get_logger(__name__)


class TriggerInterceptor:
    """Holds the console output of one handler run until it is committed or discarded.

    ``commit()`` appends the captured output to the trigger's log file,
    ``discard()`` drops it. Whichever comes first is final; later calls
    do nothing. Data written by the handler itself is not affected by either.

    Attributes:
        descriptor: Trigger whose handler produced the output
        log_path: File the output is appended to on commit
    """

    def __init__(self, descriptor: TriggerDescriptor, log_path: Path):
        self.descriptor = descriptor
        self.log_path = log_path
        self._buffer = io.StringIO()
        self._state = "open"

    @property
    def output(self) -> str:
        return self._buffer.getvalue()

    @property
    def state(self) -> str:
        """``open``, ``committed`` or ``discarded``."""
        return self._state

    @contextmanager
    def capture(self) -> Iterator["TriggerInterceptor"]:
        """Redirect stdout and stderr into the buffer for the duration of the block."""
        with redirect_stdout(self._buffer), redirect_stderr(self._buffer):
            yield self

    def commit(self) -> None:
        if self._state != "open":
            return
        self._state = "committed"

        output = self.output
        if output:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as handle:
                handle.write(output)
        logger.debug(
            "Trigger output committed",
            extra={"event": str(self.descriptor.type), "log_path": str(self.log_path), "chars": len(output)},
        )

    def discard(self) -> None:
        if self._state != "open":
            return
        self._state = "discarded"
        logger.debug(
            "Trigger output discarded",
            extra={"event": str(self.descriptor.type), "log_path": str(self.log_path)},
        )
        self._buffer = io.StringIO()
