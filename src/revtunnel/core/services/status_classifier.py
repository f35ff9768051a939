from __future__ import annotations

import re
from re import Pattern

from ..domain.models import StatusCategory

DEFAULT_SUCCESS_PATTERN = re.compile(r"success")
DEFAULT_FAILURE_PATTERN = re.compile(r"failed")
DEFAULT_TERMINATION_PATTERN = re.compile(r"killed", re.IGNORECASE)


class StatusClassifier:
    """Maps a transport status line to a ``StatusCategory``.

    Patterns are tried in order (success, failure, termination) and the
    first match wins. The defaults match OpenSSH's verbose output, e.g.
    ``remote forward success for: listen 8080`` and
    ``Warning: remote port forwarding failed for listen port 8080``.
    """

    def __init__(
        self,
        *,
        success: str | Pattern[str] = DEFAULT_SUCCESS_PATTERN,
        failure: str | Pattern[str] = DEFAULT_FAILURE_PATTERN,
        termination: str | Pattern[str] = DEFAULT_TERMINATION_PATTERN,
    ) -> None:
        self._rules: list[tuple[Pattern[str], StatusCategory]] = [
            (re.compile(success), StatusCategory.SUCCESS),
            (re.compile(failure), StatusCategory.FAILURE),
            (re.compile(termination), StatusCategory.TERMINATED),
        ]
        self._termination = self._rules[2][0]

    def classify(self, text: str) -> StatusCategory:
        for pattern, category in self._rules:
            if pattern.search(text):
                return category
        return StatusCategory.INERT

    def termination_detail(self, text: str) -> str:
        """Return the lower-cased tail starting at the termination marker,
        e.g. ``"killed by signal 15."``."""
        m = self._termination.search(text)
        if not m:
            return text.strip().lower()
        return text[m.start():].strip().lower()
