"""Lesson script loader — reads the script JSON and validates it once.

The script is loaded at startup and kept for the process lifetime. Any
failure here is fatal: the service must not answer chat turns with a
missing or malformed script, so every problem is raised as
ScriptLoadError rather than logged and skipped.

Imports from speakcoach.lesson.schemas and speakcoach.errors + stdlib.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from speakcoach.errors import ScriptLoadError
from speakcoach.lesson.schemas import LessonScript

logger = logging.getLogger(__name__)


def parse_script(data: object, source: str = "<memory>") -> LessonScript:
    """Validates already-parsed script data.

    Args:
        data: The decoded JSON document.
        source: Where the data came from, for error messages.

    Returns:
        A frozen LessonScript.

    Raises:
        ScriptLoadError: With error_type "validation_error".
    """
    try:
        return LessonScript.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first.get("loc", []))
        msg = first.get("msg", "invalid value")
        raise ScriptLoadError(
            path=source,
            error_type="validation_error",
            message=f"Invalid lesson script {source} at {loc or '<root>'}: {msg}",
        ) from exc


def load_script(path: Path) -> LessonScript:
    """Reads and validates the lesson script at ``path``.

    Raises:
        ScriptLoadError: On a missing or unreadable file, bad encoding or
            JSON, or a schema violation.
    """
    source = str(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScriptLoadError(
            path=source,
            error_type="missing_file",
            message=f"Lesson script not found: {source}",
        ) from None
    except OSError as exc:
        raise ScriptLoadError(
            path=source,
            error_type="unreadable_file",
            message=f"Cannot read lesson script {source}: {exc}",
        ) from exc
    except UnicodeDecodeError as exc:
        raise ScriptLoadError(
            path=source,
            error_type="invalid_encoding",
            message=f"Lesson script {source} is not UTF-8: {exc}",
        ) from exc
    except json.JSONDecodeError as exc:
        raise ScriptLoadError(
            path=source,
            error_type="invalid_json",
            message=f"Invalid JSON in {source}: {exc}",
        ) from exc

    script = parse_script(data, source)
    logger.info(
        "Lesson script loaded from %s: %d topic(s)", source, len(script.topics),
    )
    return script
