"""Free-text sanitising for values that end up in exports."""
import re
from typing import Optional

_FORMULA_PREFIX = re.compile(r"^[=+\-@]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")


def sanitize_input(value: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Neutralise spreadsheet formulas and strip control characters.

    Values starting with ``=``, ``+``, ``-`` or ``@`` are prefixed with a single
    quote so CSV consumers treat them as text.

    Example:
        >>> sanitize_input("=SUM(A1)")
        "'=SUM(A1)"
    """
    if value is None:
        return ""
    text = str(value)
    if _FORMULA_PREFIX.match(text.strip()):
        text = f"'{text}"
    text = _CONTROL_CHARS.sub("", text)
    if max_length is not None:
        text = text[:max_length]
    return text
