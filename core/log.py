"""
Console output for the swap pipeline.

Everything goes to the standard streams: progress to stdout, failures to
stderr. Payloads are pretty-printed as JSON with large integers kept intact.
"""
from __future__ import annotations

import json
import sys
import traceback
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from core.errors import describe_error

SEPARATOR = "-------------------------------"

_debug_enabled = False


def set_debug(enabled: bool) -> None:
    global _debug_enabled
    _debug_enabled = bool(enabled)


def is_debug() -> bool:
    return _debug_enabled


def format_timestamp() -> str:
    """Return current UTC time like "[2025-09-29 12:34:56 UTC]"."""
    return datetime.now(timezone.utc).strftime("[%Y-%m-%d %H:%M:%S UTC]")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def format_data(data: Any) -> str:
    return json.dumps(data, indent=2, default=_json_default)


def log(message: str, data: Optional[Any] = None) -> None:
    # one print per entry so lines from concurrent callers stay together
    lines = [f"{format_timestamp()} {message}"]
    if data is not None:
        lines.append(format_data(data))
    lines.append(SEPARATOR)
    print("\n".join(lines))


def debug(message: str, data: Optional[Any] = None) -> None:
    if _debug_enabled:
        log(f"[debug] {message}", data)


def log_error(message: str, error: Optional[BaseException] = None) -> None:
    err = sys.stderr
    print(SEPARATOR, file=err)
    print(f"{format_timestamp()} ERROR: {message}", file=err)
    if error is not None:
        details = describe_error(error)
        print(f"Message: {details['message']}", file=err)
        if "code" in details:
            print(f"Code: {details['code']}", file=err)
        if "data" in details:
            print(f"Data: {format_data(details['data'])}", file=err)
        if error.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
            print(f"Stack: {stack.rstrip()}", file=err)
    print(SEPARATOR, file=err)
