"""Human-readable rendition of engine failures.

The rendition is a diagnostic side effect only: the raised ``EngineError``
stays the authoritative signal for callers.
"""

import linecache
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from dbquery.constants import STATUS_WARNING

RESET = "\x1b[0m"
RED = "\x1b[31m"
YELLOW = "\x1b[33m"
BOLD = "\x1b[1m"
CYAN = "\x1b[36m"
GRAY = "\x1b[90m"
UNDERLINE = "\x1b[4m"
MAGENTA = "\x1b[35m"

HELP_MARKER = "[help]"

_PACKAGE_ROOT = str(Path(__file__).resolve().parents[1])


def _caller_frame() -> Optional[traceback.FrameSummary]:
    """Return the innermost stack frame that belongs to user code."""
    for frame in reversed(traceback.extract_stack()):
        filename = frame.filename
        if filename.startswith(_PACKAGE_ROOT):
            continue
        if "site-packages" in filename or filename.startswith("<"):
            continue
        if "asyncio" in Path(filename).parts:
            continue
        return frame
    return None


def _code_excerpt(frame: traceback.FrameSummary) -> List[str]:
    lines: List[str] = []
    lineno = frame.lineno or 0
    location = f"{frame.filename}:{lineno}"
    lines.append(f"\n{CYAN}{BOLD}[code] {RESET}{YELLOW} {UNDERLINE}{location}{RESET}")
    for number in range(max(1, lineno - 2), lineno + 3):
        source = linecache.getline(frame.filename, number)
        if not source:
            continue
        pointer = f"{RED}<-{RESET}" if number == lineno else "  "
        lines.append(f"{GRAY}{number:>4}{RESET} {pointer} {source.rstrip()}")
    return lines


def format_engine_error(status: int, message: Optional[str]) -> str:
    """Build the colored rendition of an engine failure.

    Args:
        status: Engine status code; 600 renders as a warning
        message: Engine message, optionally carrying a ``[help]`` section

    Returns:
        Multi-line string with ANSI escapes
    """
    message = message or f"Execution engine failed with status {status}"
    color = YELLOW if status == STATUS_WARNING else RED

    help_text = ""
    if HELP_MARKER in message:
        head, _, tail = message.partition(HELP_MARKER)
        output = [f"\n{RED}{BOLD}{head.strip()}{RESET}"]
        help_text = f"\n{MAGENTA}{BOLD}{HELP_MARKER}{RESET} {GRAY}{tail.strip()}{RESET}\n"
    else:
        output = [f"\n{color}{BOLD}{message}{RESET}"]

    frame = _caller_frame()
    if frame is not None:
        output.extend(_code_excerpt(frame))

    return "\n".join(output) + "\n" + help_text


def emit_engine_error(status: int, message: Optional[str]) -> None:
    """Write the rendition of an engine failure to stderr."""
    sys.stderr.write(format_engine_error(status, message))
    sys.stderr.flush()
