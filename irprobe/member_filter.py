"""Member filter — reduces a full listing to the instruction lines of one member.

Each member block in the listing is routed, according to the extraction
options, either to a capturing visitor or to a discarding one.  Members are
matched on name and kind only, so several members sharing a name (a
redefined function, the ``<body>`` of two classes, a reassigned field) are
all captured and concatenated in listing order.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod

from .ir import MemberKind
from .options import ExtractionOptions
from . import constants

logger = logging.getLogger(__name__)

_HEADER_RE = re.compile(r"^(?P<kind>method|field) (?P<name>[^\s(]+)")


class MemberVisitor(ABC):
    """Receives the lines of one member block at a time."""

    @abstractmethod
    def on_member_start(self, name: str, kind: MemberKind): ...

    @abstractmethod
    def on_instruction_line(self, text: str): ...

    @abstractmethod
    def on_member_end(self): ...


class CaptureVisitor(MemberVisitor):
    """Keeps the trimmed instruction lines of every member it is handed."""

    def __init__(self):
        self.lines: list[str] = []
        self.members_seen = 0

    def on_member_start(self, name: str, kind: MemberKind):
        self.members_seen += 1

    def on_instruction_line(self, text: str):
        self.lines.append(text)

    def on_member_end(self):
        pass


class DiscardVisitor(MemberVisitor):
    def on_member_start(self, name: str, kind: MemberKind):
        pass

    def on_instruction_line(self, text: str):
        pass

    def on_member_end(self):
        pass


def filter_member(listing: str, options: ExtractionOptions) -> list[str]:
    """Return the trimmed instruction lines of the selected member(s).

    Lines outside member blocks are dropped.  Returns an empty list when no
    member matches.
    """
    capture = CaptureVisitor()
    discard = DiscardVisitor()
    current: MemberVisitor | None = None

    for line in listing.splitlines():
        if current is not None and line[:1].isspace():
            text = line.strip()
            if text:
                current.on_instruction_line(text)
            continue
        if current is not None and line.strip() == constants.LISTING_MEMBER_END:
            current.on_member_end()
            current = None
            continue
        header = _HEADER_RE.match(line)
        if header is None:
            continue
        name, kind = header["name"], MemberKind(header["kind"])
        current = capture if options.selects(name, kind) else discard
        current.on_member_start(name, kind)

    logger.debug(
        "Selected %s %s: %d member(s), %d lines",
        options.kind.value,
        options.name,
        capture.members_seen,
        len(capture.lines),
    )
    return capture.lines
