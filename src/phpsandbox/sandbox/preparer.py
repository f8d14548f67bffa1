"""
Turns a raw PHP snippet into a self-timing script.
"""

from __future__ import annotations

import re

EXECUTION_TIME_MARKER = "__EXECUTION_TIME__"

# Tags are only stripped at the very start and end of the snippet.
_OPENING_TAG = re.compile(r"^\s*<\?php\s*")
_CLOSING_TAG = re.compile(r"\s*\?>\s*$")


def strip_php_tags(code: str) -> str:
    """Remove a leading ``<?php`` and a trailing ``?>``, leaving inner tags intact."""
    code = _OPENING_TAG.sub("", code, count=1)
    return _CLOSING_TAG.sub("", code, count=1)


def prepare_php_code(code: str) -> str:
    """
    Wrap a snippet so that it reports its own execution time.

    The wrapped program prints ``__EXECUTION_TIME__: <ms>`` on its own line
    after the user code finishes. The value always uses fixed decimals so it
    matches the interpreter's sentinel pattern.

    Args:
        code: PHP source, with or without surrounding tags.

    Returns:
        A complete PHP program.
    """
    body = strip_php_tags(code)
    return (
        "<?php\n"
        "$__sandbox_start = microtime(true);\n"
        f"{body}\n"
        "$__sandbox_end = microtime(true);\n"
        f"fwrite(STDOUT, \"\\n{EXECUTION_TIME_MARKER}: \" . "
        "sprintf('%.3F', ($__sandbox_end - $__sandbox_start) * 1000) . \"\\n\");\n"
        "?>"
    )
