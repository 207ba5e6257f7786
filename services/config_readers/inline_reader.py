"""
Inline Config Reader.

Turns configuration text (an inline attribute string or a local JSON
document) into a raw configuration dict. No validation happens here.

Inline strings may use apostrophes in place of double quotes and may carry
``//`` or ``/* */`` comments; both are normalized before parsing.

Exports:
    remove_comments_from_json: Strip comments, keeping ``//`` inside URLs
    normalize_quotes: Apostrophe-delimited syntax to JSON quotes
    parse_config_string: Inline string -> raw dict (or None)
    read_json_document: Local JSON file -> raw dict (or None)
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.READER, "InlineConfigReader")

# Block comments, or a line comment not preceded by ':' (URL scheme) or '\'
_COMMENT_PATTERN = re.compile(r'/\*[\s\S]*?\*/|([^\\:]|^)//.*$', re.MULTILINE)

# Apostrophe not escaped by a backslash
_UNESCAPED_APOSTROPHE = re.compile(r"(?<!\\)'")


def remove_comments_from_json(text: str) -> str:
    """Remove ``/* */`` and ``//`` comments; ``http://`` stays intact."""
    return _COMMENT_PATTERN.sub(r'\1', text)


def normalize_quotes(text: str) -> str:
    """
    Convert apostrophe-delimited JSON-like text to JSON.

    Unescaped apostrophes become double quotes; ``\\'`` becomes a literal
    apostrophe.
    """
    return _UNESCAPED_APOSTROPHE.sub('"', text).replace("\\'", "'")


def _loads_object(text: str, source: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Unable to parse {source} configuration: {e}")
        return None
    if not isinstance(value, dict):
        logger.warning(f"{source} configuration is a {type(value).__name__}, expected an object")
        return None
    return value


def parse_config_string(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse an inline configuration string.

    Args:
        text: Inline configuration (apostrophes allowed)

    Returns:
        Raw configuration dict, or None when the text is empty or unparseable
    """
    if text is None or not text.strip():
        return None
    return _loads_object(normalize_quotes(remove_comments_from_json(text)), "inline")


def read_json_document(path: Union[str, Path]) -> Optional[Dict[str, Any]]:
    """
    Read a local JSON configuration document.

    Comments are removed; quotes are left as they are.

    Args:
        path: File path

    Returns:
        Raw configuration dict, or None when the file is missing or unparseable
    """
    file_path = Path(path)
    try:
        text = file_path.read_text(encoding='utf-8')
    except OSError as e:
        logger.warning(f"Unable to read configuration file {file_path}: {e}")
        return None
    return _loads_object(remove_comments_from_json(text), str(file_path))
