import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .errors import FeatureNotFoundError

URL_DIRECTIVE = re.compile(r'^#\s*url:\s*(.+)$', re.IGNORECASE)
STEP_PATTERN = re.compile(r'^(Given|When|Then|And|But)\b\s*(.*)$')


def parse_url_directive(text: str) -> Optional[str]:
    """Return the URL from a first line of the form ``# url: <url>``, if any."""
    first_line = text.splitlines()[0].strip() if text else ""
    match = URL_DIRECTIVE.match(first_line)
    if match:
        return match.group(1).strip() or None
    return None


def split_step(line: str):
    """
    Split a trimmed Gherkin line into (keyword, text).
    Returns None for anything that is not a Given/When/Then/And/But step.
    """
    match = STEP_PATTERN.match(line.strip())
    if not match:
        return None
    return match.group(1), match.group(2).strip()


@dataclass(frozen=True)
class FeatureDocument:
    path: Path
    text: str
    lines: Tuple[str, ...]
    url: Optional[str] = None

    @classmethod
    def from_text(cls, text: str, path=None):
        return cls(
            path=Path(path) if path else None,
            text=text,
            lines=tuple(text.splitlines()),
            url=parse_url_directive(text),
        )

    @classmethod
    def read(cls, path):
        path = Path(path)
        if not path.is_file():
            raise FeatureNotFoundError(path)
        return cls.from_text(path.read_text(encoding="utf-8"), path)

    def step_lines(self):
        """Yield (keyword, text) for every step line, skipping comments and blanks."""
        for line in self.lines:
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            step = split_step(stripped)
            if step:
                yield step
