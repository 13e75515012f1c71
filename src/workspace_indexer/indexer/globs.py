"""
Workspace glob matching.

Patterns follow the conventions editors use for ``files.associations`` and
``files.exclude``:

- ``*`` and ``?`` never cross a '/'
- ``**`` as a whole path segment matches any number of directories
- ``[abc]`` / ``[!abc]`` character classes
- ``{a,b}`` alternatives (nested braces allowed)
- a pattern without '/' is matched against the file name only, wherever
  the file lives (``*.php`` matches ``src/a/b.php``)

Paths handed to a GlobSet are always relative and '/'-separated.
"""

import re
from typing import Iterable


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives into separate patterns.

    >>> expand_braces("src/{a,b}/*.{php,inc}")
    ['src/a/*.php', 'src/a/*.inc', 'src/b/*.php', 'src/b/*.inc']

    An unbalanced '{' is kept literally.
    """
    depth = 0
    start = -1
    for i, ch in enumerate(pattern):
        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                prefix, suffix = pattern[:start], pattern[i + 1:]
                expanded: list[str] = []
                for alt in _split_alternatives(pattern[start + 1:i]):
                    expanded.extend(expand_braces(prefix + alt + suffix))
                return expanded
    return [pattern]


def _split_alternatives(body: str) -> list[str]:
    """Split a brace body on the commas at nesting depth zero."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in body:
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current.append(ch)
    parts.append("".join(current))
    return parts


def translate(pattern: str) -> str:
    """Translate one brace-free glob into a regular expression body."""
    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            j = i
            while j < n and pattern[j] == "*":
                j += 1
            at_segment_start = i == 0 or pattern[i - 1] == "/"
            if j - i > 1 and at_segment_start and (j == n or pattern[j] == "/"):
                if j == n:
                    out.append(".*")
                    i = j
                else:
                    out.append("(?:.*/)?")
                    i = j + 1
            else:
                out.append("[^/]*")
                i = j
        elif ch == "?":
            out.append("[^/]")
            i += 1
        elif ch == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                j += 1
            if j >= n:
                out.append(re.escape(ch))
                i += 1
            else:
                body = pattern[i + 1:j].replace("\\", "\\\\").replace("[", "\\[")
                if body[0] in "!^":
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = j + 1
        elif ch == "\\" and i + 1 < n:
            out.append(re.escape(pattern[i + 1]))
            i += 2
        else:
            out.append(re.escape(ch))
            i += 1
    return "".join(out)


class GlobSet:
    """A compiled set of glob patterns, matched with OR semantics."""

    def __init__(self, patterns: Iterable[str], ignore_case: bool = False) -> None:
        self.patterns = list(patterns)
        path_parts: list[str] = []
        name_parts: list[str] = []

        for raw in self.patterns:
            for pattern in expand_braces(raw):
                pattern = pattern.removeprefix("./").lstrip("/")
                if not pattern:
                    continue
                if "/" in pattern:
                    path_parts.append(f"(?:{translate(pattern)})")
                else:
                    name_parts.append(f"(?:{translate(pattern)})")

        flags = re.DOTALL | (re.IGNORECASE if ignore_case else 0)
        self._path_re = re.compile("|".join(path_parts), flags) if path_parts else None
        self._name_re = re.compile("|".join(name_parts), flags) if name_parts else None

    def __bool__(self) -> bool:
        return self._path_re is not None or self._name_re is not None

    def match(self, rel_path: str) -> bool:
        """True if the relative path matches any pattern."""
        if self._path_re is not None and self._path_re.fullmatch(rel_path):
            return True
        if self._name_re is not None:
            name = rel_path.rstrip("/").rsplit("/", 1)[-1]
            return self._name_re.fullmatch(name) is not None
        return False

    def match_dir(self, rel_dir: str) -> bool:
        """True if a directory (and so everything below it) is matched.

        ``vendor/**`` and ``**/tests/**`` match through the trailing '/';
        ``**/node_modules`` matches the directory path itself.
        """
        return self.match(rel_dir) or self.match(rel_dir + "/")
