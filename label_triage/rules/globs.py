"""Path glob matching for the directory labeler.

Semantics follow the minimatch patterns used by GitHub labeler configs:
``*`` and ``?`` stay inside one path segment, ``**`` spans segments,
``[...]`` is a character class and dotfiles are matched like any other file.
A pattern with a leading ``!`` excludes the paths it matches.
"""

import re
from functools import lru_cache


def normalize_path(path: str | None) -> str:
    if not path:
        return ""
    p = path.replace("\\", "/").strip()
    while p.startswith("./"):
        p = p[2:]
    p = p.lstrip("/")
    p = re.sub(r"/+", "/", p)
    return p


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate one glob into an anchored regular expression."""
    glob = normalize_path(pattern)
    out: list[str] = []
    i = 0
    n = len(glob)
    while i < n:
        c = glob[i]
        if c == "*":
            if glob.startswith("**", i):
                at_segment_start = i == 0 or glob[i - 1] == "/"
                i += 2
                if at_segment_start and i < n and glob[i] == "/":
                    # "**/" matches zero or more whole directories.
                    out.append("(?:[^/]*/)*")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = glob.find("]", i + 2)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = glob[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = end
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile("".join(out) + r"\Z")


def glob_match(pattern: str, path: str) -> bool:
    return compile_glob(pattern).match(normalize_path(path)) is not None


class GlobSet:
    """A set of include globs with optional ``!`` excludes."""

    def __init__(self, patterns: list[str]):
        self.include = [p for p in patterns if not p.startswith("!")]
        self.exclude = [p[1:] for p in patterns if p.startswith("!")]

    def matches(self, path: str) -> bool:
        if not any(glob_match(p, path) for p in self.include):
            return False
        return not any(glob_match(p, path) for p in self.exclude)

    def first_match(self, paths: list[str]) -> str | None:
        """Return the first path the set matches, if any."""
        for path in paths:
            if self.matches(path):
                return path
        return None
