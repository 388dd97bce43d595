"""Text extraction over terminal output.

Pure functions, no I/O. Status screens interleave several metrics with
unrelated numbers, so percentages are only read from a short window of
lines following their label, and the first match in that window wins.
"""

import re

from quotaprobe.probes.errors import ParseFailedError, ProbeError, UpdateRequiredError

# Number of lines, starting at the label line, searched for a percentage
PERCENT_WINDOW_LINES = 12

_CONTROL_SEQUENCE_RE = re.compile(
    r"\x1b\][^\x07\x1b\n]*(?:\x07|\x1b\\)?"  # OSC ... BEL / ST, never past a line end
    r"|\x1b\[[0-?]*[ -/]*[@-~]"  # CSI
    r"|\x1b[@-Z\\-_]"  # two-byte escapes
    r"|\x1b"  # lone ESC
    r"|[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]"  # C0 controls except \t \n \r
)

_PERCENT_LEFT_RE = re.compile(r"([0-9]{1,3})%\s+left", re.IGNORECASE)


def strip_control_sequences(text: str) -> str:
    """Remove ANSI escape sequences and non-printing control characters.

    Tab, newline and carriage return are kept so line structure survives.
    The result contains no ESC byte, which makes the function idempotent.
    """
    return _CONTROL_SEQUENCE_RE.sub("", text)


def percent_from_line(line: str) -> int | None:
    """Return N from the first "N% left" on a line, if any."""
    match = _PERCENT_LEFT_RE.search(line)
    if match is None:
        return None
    return int(match.group(1))


def extract_percent(label: str, text: str) -> int | None:
    """Find the "N% left" figure that belongs to a label.

    Every line containing label (case-insensitive) opens a window of
    PERCENT_WINDOW_LINES lines, the label line included. The first
    percentage inside the first window that has one is returned.

    Args:
        label: Label substring, e.g. "5h limit"
        text: Text with control sequences already stripped

    Returns:
        The percentage, or None if no window contains one
    """
    lines = text.splitlines()
    needle = label.lower()

    for idx, line in enumerate(lines):
        if needle not in line.lower():
            continue
        for candidate in lines[idx : idx + PERCENT_WINDOW_LINES]:
            pct = percent_from_line(candidate)
            if pct is not None:
                return pct
    return None


def extract_known_error(text: str, cli_name: str = "codex") -> ProbeError | None:
    """Detect status screens that report an error instead of figures.

    Args:
        text: Text with control sequences already stripped
        cli_name: The CLI's own name, required next to "update available"
            so unrelated update banners are not mistaken for a hard stop

    Returns:
        ParseFailedError or UpdateRequiredError, or None if nothing matched
    """
    lower = text.lower()

    if "data not available yet" in lower:
        return ParseFailedError("Data not available yet")

    if "update available" in lower and cli_name.lower() in lower:
        return UpdateRequiredError()

    return None


__all__ = [
    "PERCENT_WINDOW_LINES",
    "extract_known_error",
    "extract_percent",
    "percent_from_line",
    "strip_control_sequences",
]
