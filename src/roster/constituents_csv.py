import logging
from typing import Iterable, List, Optional

from . import settings
from .constituent import Constituent
from .csv_configuration import CSVConfiguration

logger = logging.getLogger(__name__)

DEFAULT_HEADER = "Name,Identifier"
TAGGED_HEADER = "Name,Identifier,Tag"
MAX_LINES = 10_000


class ConstituentDecodeError(ValueError):
    """Base class for rejected constituent lists."""

    message = "The constituents list could not be read"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(f"{self.message}: {detail}" if detail else self.message)


class InvalidCSVError(ConstituentDecodeError):
    message = "The CSV is malformed"


class InvalidIdentifierError(ConstituentDecodeError):
    message = "A constituent identifier is invalid"


class NameTooLongError(ConstituentDecodeError):
    message = "A constituent name or identifier is too long"


class InvalidTagError(ConstituentDecodeError):
    message = "A constituent tag is invalid"


class TooManyLinesError(ConstituentDecodeError):
    message = f"The CSV has more than {MAX_LINES} lines"


def constituents_to_csv(
    constituents: Iterable[Constituent], config: CSVConfiguration
) -> str:
    """
    Render constituents as a CSV roster.

    Args:
        constituents: Any iterable of constituents
        config: Supplies the optional custom header and the show-tags switch

    Returns:
        Header line followed by one line per constituent, sorted by identifier
    """
    # A custom header is always two columns, so tags are only written under the built-in tagged header
    show_tags = config.show_tags and config.export_header is None

    if config.export_header is not None:
        lines = [config.export_header]
    elif show_tags:
        lines = [TAGGED_HEADER]
    else:
        lines = [DEFAULT_HEADER]

    for constituent in sorted(constituents, key=lambda c: c.identifier):
        name = constituent.display_name()
        if show_tags:
            lines.append(f"{name},{constituent.identifier},{constituent.tag or ''}")
        else:
            lines.append(f"{name},{constituent.identifier}")

    return "\n".join(lines)


def _has_tags(header: str, config: Optional[CSVConfiguration]) -> bool:
    if header == TAGGED_HEADER:
        return True
    if header == DEFAULT_HEADER:
        return False
    if config is not None and config.export_header is not None and header == config.export_header:
        return False
    raise InvalidCSVError(f"unrecognized header {header!r}")


def _parse_row(row: str, has_tags: bool, max_length: int) -> Constituent:
    fields = row.split(",")
    if len(fields) != (3 if has_tags else 2):
        raise InvalidCSVError(f"expected {3 if has_tags else 2} fields in {row!r}")

    raw_name = fields[0].strip()
    raw_identifier = fields[1].strip().lower()

    tag = None
    if has_tags:
        raw_tag = fields[2].strip()
        # Leading dashes are reserved for internal tags
        if raw_tag.startswith("-") or len(raw_tag) > max_length:
            raise InvalidTagError(repr(raw_tag))
        tag = raw_tag or None

    if not raw_identifier:
        raise InvalidIdentifierError(f"empty identifier in {row!r}")

    if len(raw_identifier) > max_length or len(raw_name) > max_length:
        raise NameTooLongError(f"limit is {max_length} characters")

    name = None if not raw_name or raw_name == raw_identifier else raw_name
    return Constituent(identifier=raw_identifier, name=name, tag=tag)


def constituents_from_csv(
    text: str,
    config: Optional[CSVConfiguration] = None,
    max_name_length: Optional[int] = None,
) -> List[Constituent]:
    """
    Parse a CSV roster into constituents.

    The whole list is rejected on the first bad row.

    Args:
        text: CSV content, header first
        config: Supplies the accepted custom header, if any
        max_name_length: Longest allowed name, identifier or tag;
            defaults to settings.max_name_length()

    Returns:
        Constituents in file order
    """
    if ";" in text or "\t" in text:
        raise InvalidCSVError("tabs and semicolons are not allowed")

    lines = [line for line in text.splitlines() if line]
    if len(lines) > MAX_LINES:
        raise TooManyLinesError(f"got {len(lines)}")
    if not lines:
        raise InvalidCSVError("missing header")

    max_length = max_name_length if max_name_length is not None else settings.max_name_length()
    has_tags = _has_tags(lines[0], config)

    try:
        constituents = [_parse_row(row, has_tags, max_length) for row in lines[1:]]
    except ConstituentDecodeError as e:
        logger.warning(f"Rejected constituents list: {e}")
        raise

    logger.info(f"Loaded {len(constituents)} constituents")
    return constituents
