# ABOUTME: JSON-with-comments loading for hand-edited documents
# ABOUTME: Strips // and /* */ comments, then parses as strict JSON
import json
import re
from pathlib import Path
from typing import Any

from mcpswitch.errors import DocumentIOError, NotFoundError, ParseError

# ABOUTME: Line comments run from // to end of line
LINE_COMMENT_PATTERN = re.compile(r"//.*$", re.MULTILINE)

# ABOUTME: Block comments are matched non-greedily and may span lines
BLOCK_COMMENT_PATTERN = re.compile(r"/\*[\s\S]*?\*/")


def strip_comments(text: str) -> str:
    """Remove // line comments and /* */ block comments from text.

    ABOUTME: Line comments are removed first, then block comments
    ABOUTME: Not string-aware: "http://host" inside a string loses its tail

    Args:
        text: Raw document text

    Returns:
        Text with all comment spans removed

    Examples:
        >>> strip_comments('{"a": 1} // trailing')
        '{"a": 1} '
        >>> strip_comments('{/* inline */"a": 1}')
        '{"a": 1}'
    """
    without_lines = LINE_COMMENT_PATTERN.sub("", text)
    return BLOCK_COMMENT_PATTERN.sub("", without_lines)


def loads(text: str) -> Any:
    """Parse JSON text that may contain comments.

    Raises:
        ParseError: If the text is not valid JSON once comments are removed
    """
    try:
        return json.loads(strip_comments(text))
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}") from e


def read_text(path: Path) -> str:
    """Read a UTF-8 document, mapping OS errors onto the package taxonomy."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise NotFoundError(f"File not found: {path}") from e
    except UnicodeDecodeError as e:
        raise ParseError(f"File is not valid UTF-8: {path}: {e}") from e
    except OSError as e:
        raise DocumentIOError(f"Could not read {path}: {e}") from e


def load(path: Path, allow_comments: bool = True) -> Any:
    """Read and parse a JSON document from disk.

    ABOUTME: allow_comments=False parses strict JSON (registry documents)

    Args:
        path: Path of the document
        allow_comments: Strip comments before parsing

    Returns:
        Parsed JSON value

    Raises:
        NotFoundError: If the file does not exist
        DocumentIOError: If the file cannot be read
        ParseError: If the content is not valid JSON
    """
    text = read_text(path)
    if allow_comments:
        try:
            return loads(text)
        except ParseError as e:
            raise ParseError(f"{path}: {e}") from e.__cause__

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in {path}: {e}") from e
