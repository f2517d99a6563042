"""Identifier codec: PREFIX-YYYYMMNNNNN.

The sequence is always zero-padded to a fixed width. The max-sequence
lookup orders identifiers as text, which only matches numeric order while
every sequence in a period has the same width.
"""

from src.hb_common.errors import IdentifierFormatError, SequenceOverflowError
from src.hb_identifier.domain.models import ScopeKey


class IdentifierCodec:
    def __init__(self, prefix: str = "PAT", width: int = 5) -> None:
        if not prefix:
            raise ValueError("prefix must not be empty")
        if width < 1:
            raise ValueError(f"width must be >= 1, got {width}")
        self.prefix = prefix
        self.width = width

    @property
    def max_sequence(self) -> int:
        """Highest sequence a period can hold (99999 at width 5)."""
        return 10**self.width - 1

    def scope_prefix(self, scope: ScopeKey) -> str:
        return f"{self.prefix}-{scope.period}"

    def encode(self, scope: ScopeKey, sequence: int) -> str:
        """Build the identifier text; raises SequenceOverflowError instead of wrapping."""
        if not 0 <= sequence <= self.max_sequence:
            raise SequenceOverflowError(sequence, self.width)
        return f"{self.scope_prefix(scope)}{sequence:0{self.width}d}"

    def decode(self, raw: str, expected_prefix_and_period: str) -> int | None:
        """Return the embedded sequence, or None when raw belongs to another scope.

        Raises IdentifierFormatError when raw is in the expected scope but its
        suffix is not exactly `width` ASCII digits.
        """
        if not raw.startswith(expected_prefix_and_period):
            return None
        suffix = raw[len(expected_prefix_and_period):]
        if len(suffix) != self.width or not (suffix.isascii() and suffix.isdigit()):
            raise IdentifierFormatError(raw)
        return int(suffix)
