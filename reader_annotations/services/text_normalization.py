"""
Text normalization helpers.

Anchors are measured against *normalized* text: every run of whitespace collapsed
to a single space. Renderers disagree on whitespace (DOM formatting, PDF text
runs, line breaks inserted by layout) but agree on this form, so offsets taken
against it survive re-rendering.
"""

import re

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space. Leading/trailing space is kept."""
    return _WHITESPACE_RUN.sub(" ", text)


def normalize_with_map(text: str) -> tuple[str, list[int]]:
    """
    Normalize text and record where each raw character ended up.

    Args:
        text: Raw text

    Returns:
        tuple[str, list[int]]: The normalized text and a list where entry ``i`` is the
        normalized index of raw character ``i``. All characters of a whitespace run
        map to the index of the single space that replaced them.
    """
    chars: list[str] = []
    index_map: list[int] = []
    in_whitespace = False

    for ch in text:
        if ch.isspace():
            if not in_whitespace:
                chars.append(" ")
                in_whitespace = True
        else:
            chars.append(ch)
            in_whitespace = False
        index_map.append(len(chars) - 1)

    return "".join(chars), index_map


def normalized_run_spans(runs: list[str]) -> list[tuple[int, int]]:
    """
    Compute each run's ``[start, end)`` interval in the normalized concatenation.

    Whitespace is collapsed across run boundaries, so a run that only continues
    the previous run's whitespace owns nothing and gets an empty interval.

    Args:
        runs: Rendered text runs in reading order

    Returns:
        list[tuple[int, int]]: One interval per run, aligned with ``runs``
    """
    full_text = "".join(runs)
    normalized, index_map = normalize_with_map(full_text)

    spans: list[tuple[int, int]] = []
    raw_pos = 0
    for run in runs:
        if not run:
            pos = index_map[raw_pos] if raw_pos < len(index_map) else len(normalized)
            spans.append((pos, pos))
            continue

        start = index_map[raw_pos]
        # The collapsed space already belongs to the previous run
        if raw_pos > 0 and full_text[raw_pos].isspace() and full_text[raw_pos - 1].isspace():
            start += 1
        end = index_map[raw_pos + len(run) - 1] + 1
        spans.append((start, max(start, end)))
        raw_pos += len(run)

    return spans
