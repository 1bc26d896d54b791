"""Reader and writer for the github-action-benchmark data.js history file.

The file is a JavaScript assignment ``window.BENCHMARK_DATA = {...}`` whose
body is formatted exactly like ``JSON.stringify(data, null, 2)``. Numbers are
written the way JavaScript prints them so that files written here match files
written by the upstream action byte for byte.
"""

import json
import logging
import math
import os
import stat
import tempfile
from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .models import KEEP_NULLS, BenchmarkData

logger = logging.getLogger(__name__)

SCRIPT_PREFIX = "window.BENCHMARK_DATA = "
DEFAULT_DATA_PATH = Path("dev/bench/data.js")

# Integers at or beyond this magnitude are printed in exponent form by JavaScript
_JS_EXPONENT_LIMIT = 10**21


class BenchmarkDataError(ValueError):
    """History file is missing its prefix, is not JSON, or fails validation."""


def _shortest_digits(value: float) -> tuple[str, int]:
    """Shortest round-trip digits of a positive float and the decimal point position."""
    _sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    stripped = digits.rstrip("0")
    exponent += len(digits) - len(stripped)
    digits = stripped.lstrip("0")
    return digits, len(digits) + exponent


def js_number_str(value: int | float) -> str:
    """Format a number like JavaScript's ``String(number)``."""
    if isinstance(value, bool):
        msg = f"Expected a number, got bool {value!r}"
        raise TypeError(msg)
    if isinstance(value, int):
        if abs(value) < _JS_EXPONENT_LIMIT:
            return str(value)
        value = float(value)

    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    digits, point = _shortest_digits(abs(value))
    k = len(digits)

    if k <= point <= 21:
        body = digits + "0" * (point - k)
    elif 0 < point <= 21:
        body = f"{digits[:point]}.{digits[point:]}"
    elif -6 < point <= 0:
        body = "0." + "0" * (-point) + digits
    else:
        e = point - 1
        exp = f"e{'+' if e >= 0 else '-'}{abs(e)}"
        body = digits + exp if k == 1 else f"{digits[0]}.{digits[1:]}{exp}"
    return sign + body


def _encode(value: Any, indent: str, level: int) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, (int, float)):
        # JSON.stringify writes non-finite numbers as null
        if isinstance(value, float) and not math.isfinite(value):
            return "null"
        return js_number_str(value)
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)

    inner = indent * (level + 1)
    outer = indent * level
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = [
            f"{inner}{json.dumps(str(key), ensure_ascii=False)}: {_encode(item, indent, level + 1)}"
            for key, item in value.items()
        ]
        return "{\n" + ",\n".join(items) + "\n" + outer + "}"
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        items = [f"{inner}{_encode(item, indent, level + 1)}" for item in value]
        return "[\n" + ",\n".join(items) + "\n" + outer + "]"

    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)


def dumps_js(value: Any, indent: int = 2) -> str:
    """Serialize like ``JSON.stringify(value, null, indent)``."""
    return _encode(value, " " * indent, 0)


def _reject_constant(name: str) -> None:
    msg = f"Non-standard JSON constant {name}"
    raise ValueError(msg)


def dumps_data(data: BenchmarkData, external_json: bool = False) -> str:
    """Render a history document as file contents (no trailing newline)."""
    body = dumps_js(data.to_document())
    return body if external_json else SCRIPT_PREFIX + body


def loads_data(text: str, external_json: bool = False, source: str = "<string>") -> BenchmarkData:
    """Parse file contents into a history document.

    Args:
        text: File contents
        external_json: Contents are bare JSON rather than a script assignment
        source: Name used in error messages

    Returns:
        Validated BenchmarkData

    Raises:
        BenchmarkDataError: If the prefix is missing or the body is invalid
    """
    body = text.lstrip("\ufeff")
    if not external_json:
        stripped = body.lstrip()
        if not stripped.startswith(SCRIPT_PREFIX):
            msg = f"{source}: expected file to start with '{SCRIPT_PREFIX.strip()}'"
            raise BenchmarkDataError(msg)
        body = stripped[len(SCRIPT_PREFIX):]

    try:
        document = json.loads(body, parse_constant=_reject_constant)
    except ValueError as e:
        msg = f"{source}: invalid JSON: {e}"
        raise BenchmarkDataError(msg) from e

    if not isinstance(document, dict):
        msg = f"{source}: top-level value must be an object"
        raise BenchmarkDataError(msg)

    try:
        return BenchmarkData.model_validate(document, context=KEEP_NULLS)
    except ValidationError as e:
        msg = f"{source}: invalid benchmark data: {e}"
        raise BenchmarkDataError(msg) from e


class BenchmarkDataFile:
    """Benchmark history stored on disk as data.js or plain JSON."""

    def __init__(self, path: Path | str = DEFAULT_DATA_PATH, external_json: bool = False) -> None:
        """Initialize file wrapper.

        Args:
            path: Location of the history file
            external_json: Store bare JSON instead of the window assignment
        """
        self.path = Path(path)
        self.external_json = external_json

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> BenchmarkData:
        """Load the history, or an empty document when the file does not exist."""
        if not self.exists():
            logger.info(f"No history at {self.path}, starting empty")
            return BenchmarkData.empty()

        text = self.path.read_text(encoding="utf-8")
        data = loads_data(text, self.external_json, source=str(self.path))
        logger.debug(
            f"Loaded {sum(len(v) for v in data.entries.values())} entries "
            f"in {len(data.entries)} suites from {self.path}"
        )
        return data

    def _file_mode(self) -> int:
        """Permission bits of the existing file, or the umask default for a new one."""
        if self.exists():
            return stat.S_IMODE(self.path.stat().st_mode)
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask

    def save(self, data: BenchmarkData) -> None:
        """Write the history, replacing the file atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        contents = dumps_data(data, self.external_json)

        mode = self._file_mode()
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(contents)
            # mkstemp files are created 0600
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(f"Saved benchmark data to {self.path}")
