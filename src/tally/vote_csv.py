"""
Whole-vote CSV export and import.

A vote file is a header (pre headers followed by one rendered option header
per option) and one line per ballot (rendered pre values followed by the
ballot's option tokens), all laid out by a CSVConfiguration.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Type

from roster.constituent import Constituent
from roster.constituents_csv import InvalidCSVError
from roster.csv_configuration import CSVConfiguration

from .vote import Vote, VoteOption, option_name

logger = logging.getLogger(__name__)


@dataclass
class CSVImportReport:
    """Result of a vote import: the vote and the line numbers that were skipped."""

    vote: Vote
    skipped_rows: List[int] = field(default_factory=list)


def vote_to_csv(vote: Vote, config: CSVConfiguration) -> str:
    """
    Render a vote's ballots as CSV.

    Args:
        vote: Vote to export
        config: Layout of the header and the leading columns

    Returns:
        CSV text, one line per ballot in cast order
    """
    options = vote.options
    lines = [config.render_pre_headers() + config.option_headers(vote.option_names)]

    for ballot in vote.ballots:
        tokens = ballot.to_csv_values(options, config)
        lines.append(",".join([config.render_pre_values(ballot.constituent)] + tokens))

    return "\n".join(lines)


def _parse_options(
    header: str, config: CSVConfiguration, options: Optional[Sequence[VoteOption]]
) -> List[VoteOption]:
    columns = header.split(",")
    pre_count = len(config.pre_headers)
    if columns[:pre_count] != list(config.pre_headers):
        raise InvalidCSVError(f"header does not start with {config.render_pre_headers()!r}")

    names = []
    for column in columns[pre_count:]:
        name = config.option_name_from_header(column)
        if name is None:
            raise InvalidCSVError(f"column {column!r} is not an option header")
        names.append(name)

    if not names:
        raise InvalidCSVError("no option columns")
    if len(set(names)) != len(names):
        raise InvalidCSVError("duplicate option columns")

    if options is None:
        return names

    by_name = {option_name(option): option for option in options}
    missing = [name for name in names if name not in by_name]
    if missing or len(names) != len(options):
        raise InvalidCSVError(f"header options {names} do not match the vote options")
    return [by_name[name] for name in names]


def vote_from_csv(
    text: str,
    vote_class: Type[Vote],
    config: CSVConfiguration,
    constituents: Optional[Iterable[Constituent]] = None,
    options: Optional[Sequence[VoteOption]] = None,
    name: str = "Imported vote",
) -> CSVImportReport:
    """
    Build a vote from CSV exported with vote_to_csv or a compatible tool.

    Rows that can't be decoded are skipped and reported rather than aborting
    the import; a bad header aborts it.

    Args:
        text: CSV content, header first
        vote_class: Vote kind to build, e.g. YesNoVote
        config: Layout of the header and the leading columns
        constituents: Known constituents; ballots are matched by identifier.
            When omitted the vote's constituents are the ballot casters.
        options: Options to match against the header by name; when omitted
            the option names themselves become the options
        name: Name of the new vote

    Returns:
        CSVImportReport with the vote and the skipped line numbers
    """
    rows = [(number, line) for number, line in enumerate(text.splitlines(), start=1) if line]
    if not rows:
        raise InvalidCSVError("missing header")

    vote_options = _parse_options(rows[0][1], config, options)
    known = {c.identifier: c for c in constituents} if constituents is not None else {}
    pre_count = len(config.pre_values)
    id_column = config.identifier_column

    ballots = []
    skipped = []
    for number, line in rows[1:]:
        values = line.split(",")
        if len(values) != pre_count + len(vote_options):
            logger.warning(f"Skipping line {number}: expected {pre_count + len(vote_options)} columns")
            skipped.append(number)
            continue

        identifier = values[id_column].strip().lower()
        if not identifier:
            logger.warning(f"Skipping line {number}: empty constituent identifier")
            skipped.append(number)
            continue

        constituent = known.get(identifier) or Constituent.from_identifier(identifier)
        ballot = vote_class.ballot_type.from_csv_line(
            values[pre_count:], vote_options, constituent, config
        )
        if ballot is None:
            logger.warning(f"Skipping line {number}: invalid ballot values")
            skipped.append(number)
            continue
        ballots.append(ballot)

    if constituents is None:
        roster = {b.constituent.identifier: b.constituent for b in ballots}
        vote_constituents = list(roster.values())
    else:
        vote_constituents = list(known.values())

    vote = vote_class(
        name=name,
        options=vote_options,
        constituents=vote_constituents,
        ballots=ballots,
    )
    logger.info(f"Imported {len(ballots)} ballots into '{name}', skipped {len(skipped)}")
    return CSVImportReport(vote=vote, skipped_rows=skipped)
