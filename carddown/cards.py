"""
Card parser for local text files.

Recognizes two card shapes:

    What is the capital of France?: Paris #flashcard #geo
    q: a 🧠

and multi-line cards, closed by a --- or *** separator line:

    Name the primary colours #flashcard #art
    red
    yellow
    blue
    ---

Files containing @carddown-ignore are skipped entirely.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from .exceptions import PersistenceError
from .models import Card
from .scan_index import ScanIndex

CARD_RE = re.compile(r"#flashcard|🧠")
ONE_LINE_CARD_RE = re.compile(r"^(.*):(.*)")
MULTI_LINE_CARD_RE = re.compile(r"#flashcard")
TAG_RE = re.compile(r"#([\w-]+)")
END_OF_CARD_RE = re.compile(r"^\s*(?:-\s*-\s*-|\*\s*\*\s*\*)\s*$")
TAG_SPLIT_RE = re.compile(r"[#🧠]")

IGNORE_MARKER = "@carddown-ignore"
MARKER_TAG = "flashcard"


def card_id(text: str) -> str:
    """Content hash identifying a card."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def parse_tags(line: str) -> set[str]:
    return {tag for tag in TAG_RE.findall(line) if tag != MARKER_TAG}


def strip_tags(line: str) -> str:
    return TAG_SPLIT_RE.split(line, maxsplit=1)[0].strip()


def _lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


@dataclass
class _PendingCard:
    """A multi-line card that has not seen its separator yet."""

    prompt: str
    first_line: int
    tags: set[str] = field(default_factory=set)
    lines: list[str] = field(default_factory=list)


class CardParser:
    """Extracts cards from text files."""

    def __init__(self, file_types: list[str] | None = None):
        self.file_types = {t.lstrip(".").lower() for t in (file_types or ["md", "txt", "org"])}

    def parse_text(self, text: str, file: Path) -> list[Card]:
        """Parse card definitions out of a file's contents."""
        if IGNORE_MARKER in text:
            logger.info(f"Ignoring file: {file}")
            return []

        cards: list[Card] = []
        pending: _PendingCard | None = None

        # Split on \n only so line numbers match what an editor shows
        for line_number, line in enumerate(_lines(text)):
            if CARD_RE.search(line):
                one_line = ONE_LINE_CARD_RE.match(line)
                if one_line:
                    prompt = one_line.group(1).strip()
                    if not prompt:
                        continue
                    answer = one_line.group(2)
                    cards.append(
                        Card(
                            id=card_id(strip_tags(line)),
                            file=file,
                            line=line_number,
                            prompt=prompt,
                            response=[strip_tags(answer)],
                            tags=parse_tags(answer),
                        )
                    )
                    pending = None
                elif MULTI_LINE_CARD_RE.search(line):
                    prompt = strip_tags(line)
                    if not prompt:
                        continue
                    pending = _PendingCard(
                        prompt=prompt,
                        first_line=line_number,
                        tags=parse_tags(line),
                        lines=[prompt],
                    )
            elif pending is not None and END_OF_CARD_RE.match(line):
                cards.append(
                    Card(
                        id=card_id("\n".join(pending.lines)),
                        file=file,
                        line=pending.first_line,
                        prompt=pending.prompt,
                        response=pending.lines[1:],
                        tags=pending.tags,
                    )
                )
                pending = None
            elif pending is not None:
                pending.lines.append(line)

        return cards

    def parse_file(self, path: Path | str) -> list[Card]:
        """Parse a single file into cards."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.warning(f"Skipping non UTF-8 file: {path}")
            return []
        except OSError as e:
            raise PersistenceError(f"Error reading ({e.strerror})", path) from e

        cards = self.parse_text(text, path)
        logger.debug(f"Parsed {len(cards)} cards from {path}")
        return cards

    def find_files(self, root: Path | str) -> list[Path]:
        """A single file, or every matching file below a directory."""
        root = Path(root)
        if root.is_file():
            return [root]
        if not root.is_dir():
            raise PersistenceError("No such file or directory", root)

        return sorted(
            p
            for p in root.rglob("*")
            if p.is_file() and p.suffix.lstrip(".").lower() in self.file_types
        )

    def scan(
        self,
        root: Path | str,
        index: ScanIndex | None = None,
        full: bool = True,
    ) -> list[Card]:
        """
        Parse cards under root.

        Args:
            root: File or directory to scan
            index: When given, only files changed since the last scan are parsed
            full: Parse every file even if the index says it is unchanged

        Returns:
            Cards found in the parsed files
        """
        files = self.find_files(root)
        if index is not None:
            files = index.select_files(files, full)

        cards: list[Card] = []
        for file in files:
            cards.extend(self.parse_file(file))

        logger.info(f"Found {len(cards)} cards in {len(files)} files")
        return cards
