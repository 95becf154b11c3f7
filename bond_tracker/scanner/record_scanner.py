"""
Line-oriented finite-state scanner over flat listing markup.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from pydantic import ValidationError

from ..shared.exceptions import MalformedFieldError
from .models import FamilyLayout, FieldRecognizer, ScanField, ScannedRecord

logger = logging.getLogger(__name__)


class ScanState(Enum):
    """Scanner states."""

    SEEKING_IDENTIFIER = auto()
    FILLING_FIELDS = auto()


@dataclass
class _PartialRecord:
    """Accumulator for the record currently being filled.

    A fresh instance is created for every identifier and discarded once
    the record is emitted or abandoned.
    """

    layout: FamilyLayout
    values: dict[ScanField, Any] = field(default_factory=dict)
    next_index: int = 1

    @property
    def complete(self) -> bool:
        return self.next_index >= len(self.layout.fields)

    def candidates(self) -> Iterator[tuple[int, FieldRecognizer]]:
        """Yield the expected field, then the ones an optional gap may skip to."""
        for index in range(self.next_index, len(self.layout.fields)):
            recognizer = self.layout.fields[index]
            yield index, recognizer
            if not recognizer.optional:
                return

    def fill(self, index: int, value: Any) -> None:
        for skipped in self.layout.fields[self.next_index : index]:
            self.values[skipped.field] = skipped.default
        self.values[self.layout.fields[index].field] = value
        self.next_index = index + 1

    def to_record(self) -> ScannedRecord:
        fields = {name.value: value for name, value in self.values.items()}
        return ScannedRecord(kind=self.layout.kind, **fields)


class RecordScanner:
    """Recovers raw records for one instrument family.

    The scanner only ever tries the *next expected* field on each line, so
    a pattern that could match several fields (any bare number, say) is
    disambiguated by position. The identifier is the exception: it is
    checked on every line, and a match abandons any unfinished record.
    """

    def __init__(self, layout: FamilyLayout) -> None:
        """Initialize the scanner for a family layout."""
        self.layout = layout

    def scan(self, html: str) -> list[ScannedRecord]:
        """
        Scan a page and return its records in document order.

        Args:
            html: Page markup

        Returns:
            list[ScannedRecord]: Complete records; incomplete or malformed
            rows are dropped
        """
        return list(self.iter_records(html.splitlines()))

    def iter_records(self, lines: Iterable[str]) -> Iterator[ScannedRecord]:
        """Yield complete records from an iterable of lines."""
        state = ScanState.SEEKING_IDENTIFIER
        partial: _PartialRecord | None = None

        for line_number, line in enumerate(lines, start=1):
            if (isin := self.layout.identifier.match(line)) is not None:
                if partial is not None:
                    logger.debug(
                        f"Abandoning incomplete {self.layout.kind} record "
                        f"{partial.values.get(ScanField.IDENTIFIER)} at line {line_number}"
                    )
                partial = _PartialRecord(self.layout)
                partial.values[ScanField.IDENTIFIER] = isin
                state = ScanState.FILLING_FIELDS
                continue

            if state is not ScanState.FILLING_FIELDS or partial is None:
                continue

            try:
                matched = self._advance(partial, line)
            except MalformedFieldError as e:
                logger.warning(
                    f"Dropping {self.layout.kind} record "
                    f"{partial.values.get(ScanField.IDENTIFIER)}: {e}"
                )
                partial, state = None, ScanState.SEEKING_IDENTIFIER
                continue

            if not matched or not partial.complete:
                continue

            try:
                yield partial.to_record()
            except ValidationError as e:
                logger.warning(
                    f"Dropping {self.layout.kind} record "
                    f"{partial.values.get(ScanField.IDENTIFIER)}: {e}"
                )
            partial, state = None, ScanState.SEEKING_IDENTIFIER

        if partial is not None:
            logger.debug(
                f"Discarding incomplete {self.layout.kind} record "
                f"{partial.values.get(ScanField.IDENTIFIER)} at end of input"
            )

    @staticmethod
    def _advance(partial: _PartialRecord, line: str) -> bool:
        """Try the expected field(s) on ``line``; return True on a match."""
        for index, recognizer in partial.candidates():
            if (raw := recognizer.match(line)) is not None:
                partial.fill(index, recognizer.convert(raw))
                return True
        return False
