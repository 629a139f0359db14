"""
Running page extraction scripts.

An extraction script is a plain JavaScript file, the same one you would paste into
the browser console, defining a function named ``extractSomething()`` that returns
JSON-compatible data. Scripts check ``window.__SCRAPER_IMPORT__`` to skip their
console auto-run when injected here.
"""

import logging
import re
from pathlib import Path
from typing import Any

from .errors import ExtractionScriptError


logger = logging.getLogger(__name__)

EXTRACT_FUNCTION_RE = re.compile(r"function\s+(extract\w+)\s*\(")


def wrap_script(source: str, name: str = "<script>") -> str:
    """Wrap an extraction script so that evaluating it returns the extracted data."""
    match = EXTRACT_FUNCTION_RE.search(source)
    if match is None:
        raise ExtractionScriptError(f"Could not find extraction function in script: {name}")
    return f"window.__SCRAPER_IMPORT__ = true;\n{source}\n{match.group(1)}();\n"


def load_script(path: Path) -> str:
    path = Path(path)
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ExtractionScriptError(f"Script not found: {path} ({e})") from None
    return wrap_script(source, path.name)


async def run_extraction(session, script_path: Path) -> Any:
    """Inject the script at ``script_path`` into the session's page and return its result."""
    script = load_script(script_path)
    logger.info("Injecting script: %s", Path(script_path).name)
    data = await session.run_script(script)
    logger.info("Script execution complete: %s", Path(script_path).name)
    return data
