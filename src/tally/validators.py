"""
Ballot validation shared by every vote kind.

Validators are pure: they read the current ballots (and the vote they belong
to) and report offending ballots without changing anything. Generic
validators work for any ballot type; vote kinds subclass Validator for their
own ("particular") rules.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, List, Sequence, Tuple, TypeVar

if TYPE_CHECKING:
    from .vote import Vote

logger = logging.getLogger(__name__)

B = TypeVar("B")

CheckFunction = Callable[[Sequence[B], "Vote"], List[B]]


@dataclass(frozen=True)
class VoteValidationResult:
    """Outcome of one validator run against a ballot set."""

    name: str
    passed: bool
    description: str
    offenders: Tuple = ()


class VoteValidationError(RuntimeError):
    """Raised by strict validation when at least one validator failed."""

    def __init__(self, results: Sequence[VoteValidationResult]):
        self.results = list(results)
        names = ", ".join(result.name for result in self.results)
        super().__init__(f"Vote validation failed: {names}")


@dataclass(frozen=True)
class Validator(Generic[B]):
    """A named check returning the ballots that break a rule."""

    name: str
    description: str
    check: CheckFunction

    def validate(self, ballots: Sequence[B], vote: "Vote") -> VoteValidationResult:
        offenders = tuple(self.check(ballots, vote))
        if offenders:
            logger.debug(f"Validator '{self.name}' flagged {len(offenders)} ballots")
        return VoteValidationResult(
            name=self.name,
            passed=not offenders,
            description=self.description,
            offenders=offenders,
        )


class GenericValidator(Validator[B]):
    """Validator usable with any vote kind."""


def no_blank_votes() -> GenericValidator:
    return GenericValidator(
        name="No blank votes",
        description="Every ballot must contain at least one vote",
        check=lambda ballots, vote: [b for b in ballots if b.is_blank],
    )


def everyone_has_voted() -> GenericValidator:
    """Offenders are bare-bones ballots for constituents who never voted."""

    def check(ballots, vote):
        voted = {b.constituent.identifier for b in ballots}
        missing = sorted(
            (c for c in vote.constituents if c.identifier not in voted),
            key=lambda c: c.identifier,
        )
        return [vote.bare_ballot_for(c) for c in missing]

    return GenericValidator(
        name="Everyone has voted",
        description="Every constituent must have cast a ballot",
        check=check,
    )


def no_foreign_votes() -> GenericValidator:
    def check(ballots, vote):
        known = {c.identifier for c in vote.constituents}
        return [b for b in ballots if b.constituent.identifier not in known]

    return GenericValidator(
        name="No foreign votes",
        description="Only constituents of the vote may cast ballots",
        check=check,
    )


def one_vote_per_constituent() -> GenericValidator:
    """Flags every ballot after the first from the same identifier."""

    def check(ballots, vote):
        seen = set()
        duplicates = []
        for ballot in ballots:
            identifier = ballot.constituent.identifier
            if identifier in seen:
                duplicates.append(ballot)
            seen.add(identifier)
        return duplicates

    return GenericValidator(
        name="One vote per constituent",
        description="A constituent may only cast one ballot",
        check=check,
    )
