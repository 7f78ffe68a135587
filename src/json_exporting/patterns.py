"""Simple include/exclude patterns used to select hosts, charts and labels.

A pattern string is a space-separated list of shell-style globs. A glob
prefixed with ``!`` is negative. Globs are evaluated left to right and the
first one that matches decides; a name that matches nothing is rejected.

    >>> SimplePattern("!*.secret *").matches("system.cpu")
    True
    >>> SimplePattern("!*.secret *").matches("app.secret")
    False
"""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase


@dataclass(frozen=True)
class _Glob:
    glob: str
    negative: bool


class SimplePattern:
    """Ordered list of positive and negative globs."""

    def __init__(self, pattern: str = "*") -> None:
        self._source = pattern or ""
        self._globs: list[_Glob] = []
        for word in self._source.split():
            if word.startswith("!"):
                if len(word) > 1:
                    self._globs.append(_Glob(word[1:], True))
            else:
                self._globs.append(_Glob(word, False))

    @property
    def source(self) -> str:
        return self._source

    def matches(self, name: str) -> bool:
        for glob in self._globs:
            if fnmatchcase(name, glob.glob):
                return not glob.negative
        return False

    def __repr__(self) -> str:
        return f"SimplePattern({self._source!r})"
