import logging
import re
from pathlib import Path
from typing import List

from ..exceptions import SearchPatternError

logger = logging.getLogger(__name__)


def grep_tree(root: Path, pattern: str) -> List[str]:
    """
    Return `relative/path:lineno:line` for every line under `root` matching `pattern`.

    Binary and undecodable files are skipped.

    Raises:
        SearchPatternError: `pattern` is not a valid regular expression
    """
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise SearchPatternError(f"Invalid search pattern '{pattern}': {e}") from e
    matches: List[str] = []
    for path in sorted(p for p in root.rglob("*") if p.is_file()):
        try:
            text = path.read_text(encoding="utf-8")
        except (UnicodeDecodeError, OSError):
            logger.debug(f"Skipping unreadable file '{path}'")
            continue
        relative = path.relative_to(root).as_posix()
        for lineno, line in enumerate(text.splitlines(), start=1):
            if regex.search(line):
                matches.append(f"{relative}:{lineno}:{line}")
    return matches
