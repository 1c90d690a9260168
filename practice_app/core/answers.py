"""
Answer normalization and answer-key parsing.

Every correctness decision in the service goes through ``normalize_answer``:
the immediate feedback shown after each submission and the end-of-session
grading must agree, so neither path compares raw strings.

Normalization rules (applied in order):
1. Trim surrounding whitespace
2. Uppercase
3. Map option numbers "1".."4" to option letters "A".."D"

Anything else is returned trimmed and uppercased, so numeric-entry answers
such as "12.5" pass through unchanged.
"""

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Union

# Option numbers accepted as aliases for option letters
OPTION_NUMBER_TO_LETTER: Dict[str, str] = {
    "1": "A",
    "2": "B",
    "3": "C",
    "4": "D",
}

# Any of these characters switches the key parser to "q:answer" pairs
_PAIR_MARKERS = re.compile(r"[:=,;\n]")
_PAIR_SEPARATORS = re.compile(r"[,;\n]")
_KEY_VALUE_SEPARATORS = re.compile(r"[:=]")


class AnswerKeyError(ValueError):
    """Raised when an uploaded answer key is not a question -> answer mapping."""


def normalize_answer(answer: Optional[str]) -> str:
    """
    Canonicalize an answer string for comparison.

    Total over its input: ``None`` normalizes to an empty string.

    Example:
        >>> normalize_answer(" b ")
        'B'
        >>> normalize_answer("2")
        'B'
        >>> normalize_answer("12.5")
        '12.5'
    """
    if answer is None:
        return ""
    canonical = str(answer).strip().upper()
    return OPTION_NUMBER_TO_LETTER.get(canonical, canonical)


def is_attempted(answer: Optional[str]) -> bool:
    """Return True if the answer has any non-whitespace content."""
    return bool(answer is not None and str(answer).strip())


def answers_match(submitted: Optional[str], expected: Optional[str]) -> bool:
    """
    Compare a submitted answer with the expected one after normalization.

    An unattempted answer never matches, even against an empty key entry.
    """
    if not is_attempted(submitted):
        return False
    return normalize_answer(submitted) == normalize_answer(expected)


def parse_answer_key_text(text: Optional[str]) -> Dict[str, str]:
    """
    Parse a pasted answer key.

    Two shapes are accepted:

    - pairs separated by commas, semicolons or newlines, each written as
      ``q:answer`` or ``q=answer`` (``"1:A, 2:C\\n3=12.5"``);
    - a plain whitespace-separated list, keyed by position (``"A C 12.5"``
      becomes ``{"1": "A", "2": "C", "3": "12.5"}``).

    Malformed pair entries are skipped rather than rejected so a single typo
    does not discard the rest of the key.
    """
    answers: Dict[str, str] = {}
    if not text:
        return answers

    if _PAIR_MARKERS.search(text):
        for entry in _PAIR_SEPARATORS.split(text):
            parts = _KEY_VALUE_SEPARATORS.split(entry)
            if len(parts) != 2:
                continue
            question, answer = parts[0].strip(), parts[1].strip()
            if question and answer:
                answers[question] = answer
        return answers

    for position, answer in enumerate(text.split(), start=1):
        answers[str(position)] = answer
    return answers


def parse_answer_key_json(payload: Union[str, bytes, Mapping[str, Any]]) -> Dict[str, str]:
    """
    Parse an uploaded JSON answer key such as ``{"1": "A", "2": "C"}``.

    Args:
        payload: Raw JSON text/bytes or an already decoded mapping

    Returns:
        Mapping of question number (string) to answer (string)

    Raises:
        AnswerKeyError: If the payload is not valid JSON or not a JSON object
    """
    data: Any = payload
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise AnswerKeyError(f"Answer key is not valid JSON: {e}") from e

    if not isinstance(data, Mapping):
        raise AnswerKeyError(
            'Answer key must be a JSON object of answers, e.g. {"1": "A", "2": "C"}.'
        )

    return {
        str(question).strip(): str(answer).strip()
        for question, answer in data.items()
        if str(question).strip() and answer is not None and str(answer).strip()
    }


def parse_question_ranges(text: Optional[str]) -> List[int]:
    """
    Parse question ranges such as ``"1-5; 8; 10-12"`` into question numbers.

    Every character other than digits, ``-``, ``;`` and ``,`` is discarded
    before parsing, so ``"Q 1-5; Q 8"`` reads as ``"1-5;8"``. Ranges with
    start greater than end are ignored.

    Returns:
        Sorted list of unique question numbers
    """
    if not text or not text.strip():
        return []

    cleaned = re.sub(r"[^0-9\-;,]", "", text)
    numbers = set()

    for part in re.split(r"[;,]", cleaned):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            bounds = part.split("-")
            if len(bounds) != 2 or not bounds[0] or not bounds[1]:
                continue
            start, end = int(bounds[0]), int(bounds[1])
            if start <= end:
                numbers.update(range(start, end + 1))
        elif part.isdigit():
            numbers.add(int(part))

    return sorted(numbers)
