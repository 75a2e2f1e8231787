import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .constituent import Constituent

logger = logging.getLogger(__name__)

CONSTITUENT_ID_PLACEHOLDER = "{constituentID}"
CONSTITUENT_TAG_PLACEHOLDER = "{constituentTag}"
OPTION_NAME_TAG = "option name"
OPTION_NAME_PLACEHOLDER = "{" + OPTION_NAME_TAG + "}"

# Recognized special keys
EXPORT_HEADER_KEY = "constituents-export header"
EXPORT_SHOW_TAGS_KEY = "constituents-export show-tags"
PRIORITY_SUFFIX_KEY = "Alternative vote priority suffix"

FORBIDDEN_CHARACTERS = (";", "\n", "\r", "\t")


class CSVConfigurationError(ValueError):
    """Base class for templates rejected at construction."""

    message = "The CSV configuration is invalid"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(f"{self.message}: {detail}" if detail else self.message)


class InvalidPreHeadersError(CSVConfigurationError):
    message = "The pre headers are invalid"


class InvalidPreValuesError(CSVConfigurationError):
    message = "The pre values are invalid"


class InvalidOptionHeaderError(CSVConfigurationError):
    message = "The option header is invalid"


class IncompatiblePreHeadersAndValuesError(CSVConfigurationError):
    message = "The number of pre headers and pre values must be the same"


class InvalidSpecialKeyError(CSVConfigurationError):
    message = "A special key is invalid"


def _count_placeholders(value: str) -> Optional[int]:
    """
    Count brace-delimited placeholders in a template.

    Returns:
        Number of placeholders, or None when braces are unbalanced,
        closed before being opened, or nested
    """
    depth = 0
    count = 0
    for char in value:
        if char == "{":
            if depth:
                return None
            depth = 1
        elif char == "}":
            if not depth:
                return None
            depth = 0
            count += 1
    return None if depth else count


def _is_valid_template(
    value: str,
    allows_comma: bool = False,
    minimum_placeholders: int = 0,
    maximum_placeholders: Optional[int] = None,
) -> bool:
    """
    Check one template field against the CSV template grammar.

    Args:
        value: Template text
        allows_comma: Whether commas may appear in the field
        minimum_placeholders: Fewest placeholders allowed
        maximum_placeholders: Most placeholders allowed, None for no limit

    Returns:
        Whether the field is valid
    """
    if not value:
        return False

    if any(char in value for char in FORBIDDEN_CHARACTERS):
        return False
    if not allows_comma and "," in value:
        return False

    placeholders = _count_placeholders(value)
    if placeholders is None:
        return False

    if placeholders < minimum_placeholders:
        return False
    if maximum_placeholders is not None and placeholders > maximum_placeholders:
        return False

    return True


def _is_valid_export_header(value: str) -> bool:
    # Exactly one comma, with text on both sides
    if not _is_valid_template(
        value, allows_comma=True, minimum_placeholders=0, maximum_placeholders=0
    ):
        return False
    return value.count(",") == 1 and not value.startswith(",") and not value.endswith(",")


@dataclass(frozen=True)
class CSVConfiguration:
    """
    A validated template describing how votes are written to and read from CSV.

    Entries in ``pre_values`` equal to ``{constituentID}`` or ``{constituentTag}``
    are replaced per constituent; ``option_header`` must contain ``{option name}``
    exactly once. All checks happen here, so a constructed configuration can
    always be rendered.
    """

    name: str
    pre_headers: Tuple[str, ...]
    pre_values: Tuple[str, ...]
    option_header: str
    special_keys: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        pre_headers = tuple(self.pre_headers)
        pre_values = tuple(self.pre_values)

        if len(pre_headers) != len(pre_values):
            raise IncompatiblePreHeadersAndValuesError(
                f"{len(pre_headers)} headers, {len(pre_values)} values"
            )

        if not all(_is_valid_template(v) for v in pre_values):
            raise InvalidPreValuesError()
        if CONSTITUENT_ID_PLACEHOLDER not in pre_values:
            raise InvalidPreValuesError(f"missing {CONSTITUENT_ID_PLACEHOLDER}")

        if not all(_is_valid_template(h, maximum_placeholders=0) for h in pre_headers):
            raise InvalidPreHeadersError()

        if not _is_valid_template(
            self.option_header, minimum_placeholders=1, maximum_placeholders=1
        ) or OPTION_NAME_PLACEHOLDER not in self.option_header:
            raise InvalidOptionHeaderError(repr(self.option_header))

        special_keys = dict(self.special_keys)
        export_header = special_keys.get(EXPORT_HEADER_KEY)
        if export_header is not None and not _is_valid_export_header(export_header):
            raise InvalidSpecialKeyError(f"{EXPORT_HEADER_KEY}={export_header!r}")

        object.__setattr__(self, "pre_headers", pre_headers)
        object.__setattr__(self, "pre_values", pre_values)
        object.__setattr__(self, "special_keys", MappingProxyType(special_keys))

        logger.debug(f"Built CSV configuration '{self.name}'")

    @classmethod
    def default(cls) -> "CSVConfiguration":
        """Identifier column followed by one column per option."""
        return cls(
            name="Default",
            pre_headers=["Constituent id"],
            pre_values=[CONSTITUENT_ID_PLACEHOLDER],
            option_header=OPTION_NAME_PLACEHOLDER,
        )

    @classmethod
    def smkid(cls) -> "CSVConfiguration":
        """Google Forms export layout used by SMKid (timestamp, student number, options)."""
        return cls(
            name="SMKid",
            pre_headers=["Tidsstempel", "Studienummer"],
            pre_values=["01/01/2001 00.00.01", CONSTITUENT_ID_PLACEHOLDER],
            option_header="Stemmeseddel [" + OPTION_NAME_PLACEHOLDER + "]",
            special_keys={
                PRIORITY_SUFFIX_KEY: ".0",
                EXPORT_HEADER_KEY: "Navn,Studienummer",
            },
        )

    @property
    def export_header(self) -> Optional[str]:
        return self.special_keys.get(EXPORT_HEADER_KEY)

    @property
    def show_tags(self) -> bool:
        return self.special_keys.get(EXPORT_SHOW_TAGS_KEY) == "1"

    @property
    def identifier_column(self) -> int:
        """Position of the constituent identifier among the pre values."""
        return self.pre_values.index(CONSTITUENT_ID_PLACEHOLDER)

    def render_pre_headers(self) -> str:
        return ",".join(self.pre_headers)

    def render_pre_values(self, constituent: Constituent) -> str:
        """
        Render the leading columns of a CSV line for one constituent.

        Args:
            constituent: The constituent represented on the line

        Returns:
            Comma-joined pre values with placeholders substituted
        """
        rendered = []
        for value in self.pre_values:
            if value == CONSTITUENT_ID_PLACEHOLDER:
                rendered.append(constituent.identifier)
            elif value == CONSTITUENT_TAG_PLACEHOLDER:
                rendered.append(constituent.tag or "")
            else:
                rendered.append(value)
        return ",".join(rendered)

    def option_headers(self, option_names: Iterable[str]) -> str:
        """
        Render the option part of a header line.

        Args:
            option_names: Names of all options, in column order

        Returns:
            Each rendered option header prefixed by a comma
        """
        return "".join(
            "," + self.option_header.replace(OPTION_NAME_PLACEHOLDER, option_name)
            for option_name in option_names
        )

    def option_header_split(self, tags: Sequence[str] = (OPTION_NAME_TAG,)) -> List[str]:
        """
        Split the option header into the literal pieces around its placeholders.

        ``"Stemmeseddel [{option name}]"`` splits into ``["Stemmeseddel [", "]"]``.

        Args:
            tags: Placeholder names (without braces) to cut out

        Returns:
            The literal fragments surrounding the placeholders
        """
        head, *chunks = self.option_header.split("{")
        pieces = [head]
        for chunk in chunks:
            tag, _, rest = chunk.partition("}")
            pieces.append(rest if tag in tags else tag + rest)
        return pieces

    def option_name_from_header(self, header: str) -> Optional[str]:
        """Recover an option name from a rendered option header, or None if it doesn't match."""
        prefix, suffix = self.option_header_split()
        if len(header) <= len(prefix) + len(suffix):
            return None
        if not header.startswith(prefix) or not header.endswith(suffix):
            return None
        return header[len(prefix) : len(header) - len(suffix)]
