import logging
import re
from pathlib import Path

import chardet

logger = logging.getLogger(__name__)

_LINE_SPLIT_RE = re.compile(r"\r?\n")


def split_lines(text: str) -> list[str]:
    """Split a text into lines on `\\n` or `\\r\\n`.

    A single trailing line terminator does not produce an extra empty line.

    """
    if not text:
        return []

    lines = _LINE_SPLIT_RE.split(text)

    if lines[-1] == "":
        lines.pop()

    return lines


def read_text_unknown_encoding(file: Path) -> str | None:
    """Read a file and return the contents as a string. Will guess the encoding if it is not UTF-8.

    Args:
        file (Path): Path to the file

    Returns:
        str | None: Contents of the file if the file was read successfully, None otherwise

    """
    logger.debug(f"Reading file <{file}>")
    raw_text = ""
    with file.open(encoding="utf-8") as f:
        try:
            raw_text = f.read()
        except UnicodeDecodeError:
            logger.debug(f"File {file} is not in UTF-8 encoding. Trying to detect encoding.")
            with file.open("rb") as fb:
                encs = chardet.detect(fb.read())

            encoding = encs["encoding"]
            if encoding is None:
                logger.error(f"Could not detect encoding for file {file}.")
                return None

            logger.debug(f"Detected encoding {encoding} for file {file}.")
            try:
                raw_text = file.read_text(encoding=encoding)
            except (UnicodeDecodeError, LookupError):
                logger.exception(f"Could not decode file {file} as {encoding}.")
                return None

    return raw_text


def read_lines(file: Path) -> list[str] | None:
    """Read a text file of unknown encoding as a list of lines without line terminators.

    Returns:
        list[str] | None: the lines, or None if the file could not be decoded

    """
    text = read_text_unknown_encoding(file)

    if text is None:
        return None

    return split_lines(text)
