from dataclasses import dataclass
from typing import Optional

ConstituentIdentifier = str


@dataclass(frozen=True)
class Constituent:
    """A voter in a vote, keyed by its normalized identifier."""

    identifier: ConstituentIdentifier
    name: Optional[str] = None
    tag: Optional[str] = None

    @classmethod
    def from_identifier(cls, value: ConstituentIdentifier) -> "Constituent":
        """Shorthand used mostly by tests: a constituent with only an identifier."""
        return cls(identifier=value)

    def display_name(self) -> str:
        """Screen name for the constituent, falling back to its identifier."""
        return self.name if self.name is not None else self.identifier
