import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, NamedTuple, Optional, Sequence, Union

import pandas as pd

from roster.constituent import Constituent
from roster.csv_configuration import CSVConfiguration

from .validators import Validator
from .vote import Vote, VoteOption, VoteStub, option_name, register_vote_type

logger = logging.getLogger(__name__)


class YesNoChoice(Enum):
    """What a ballot says about one option. Values are the CSV tokens."""

    YES = "1"
    NO = "0"
    UNVOTED = ""

    @classmethod
    def from_value(cls, value: Union[bool, str, "YesNoChoice", None]) -> "YesNoChoice":
        """Accept a choice, a bool, None for unvoted, or a CSV token ("1", "0", "")."""
        if isinstance(value, YesNoChoice):
            return value
        if value is None:
            return cls.UNVOTED
        if isinstance(value, bool):
            return cls.YES if value else cls.NO
        if isinstance(value, str):
            return cls(value)
        raise TypeError(f"Cannot read a yes/no choice from {type(value).__name__}")


class YesNoCount(NamedTuple):
    yes: int
    no: int
    blank: int


@dataclass(frozen=True)
class YesNoBallot(VoteStub):
    """
    A yes/no ballot.

    ``values`` only holds options the constituent actually voted on; an option
    missing from it is unvoted, which is different from an explicit no.
    Values may be given as bools or YesNoChoice; UNVOTED entries are dropped.
    """

    constituent: Constituent
    values: Mapping[VoteOption, bool] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        explicit = {}
        for option, value in dict(self.values).items():
            choice = YesNoChoice.from_value(value)
            if choice is not YesNoChoice.UNVOTED:
                explicit[option] = choice is YesNoChoice.YES
        object.__setattr__(self, "values", MappingProxyType(explicit))

    @classmethod
    def bare_bones(cls, constituent: Constituent) -> "YesNoBallot":
        return cls(constituent=constituent)

    @property
    def is_blank(self) -> bool:
        return not self.values

    @property
    def yes_count(self) -> int:
        return sum(1 for value in self.values.values() if value)

    def choice(self, option: VoteOption) -> YesNoChoice:
        return YesNoChoice.from_value(self.values.get(option))

    @classmethod
    def from_csv_line(
        cls,
        values: Sequence[str],
        options: Sequence[VoteOption],
        constituent: Constituent,
        config: Optional[CSVConfiguration] = None,
    ) -> Optional["YesNoBallot"]:
        """
        Decode the option columns of one CSV line.

        "1" is yes, "0" is no and "" leaves the option unvoted.

        Args:
            values: Option columns, one per option
            options: Options of the vote, in column order
            constituent: The constituent casting the ballot
            config: Unused by yes/no ballots

        Returns:
            The ballot, or None if the count or any token is wrong
        """
        if len(values) != len(options):
            logger.debug(
                f"Ballot for {constituent.identifier} has {len(values)} values for {len(options)} options"
            )
            return None

        choices = {}
        for option, token in zip(options, values):
            try:
                choices[option] = YesNoChoice(token)
            except ValueError:
                logger.debug(f"Ballot for {constituent.identifier} has invalid value {token!r}")
                return None

        return cls(constituent=constituent, values=choices)

    def csv_value_for(
        self, option: VoteOption, config: Optional[CSVConfiguration] = None
    ) -> str:
        return self.choice(option).value


class YesNoValidator(Validator[YesNoBallot]):
    """Validator bound to yes/no ballots."""


def no_foreign_options() -> YesNoValidator:
    def check(ballots, vote):
        declared = set(vote.options)
        return [b for b in ballots if any(option not in declared for option in b.values)]

    return YesNoValidator(
        name="No foreign options",
        description="Ballots may only vote on the options of the vote",
        check=check,
    )


def max_yes_votes(limit: int) -> YesNoValidator:
    return YesNoValidator(
        name=f"At most {limit} yes votes",
        description=f"A ballot may vote yes to at most {limit} options",
        check=lambda ballots, vote: [b for b in ballots if b.yes_count > limit],
    )


def min_yes_votes(limit: int) -> YesNoValidator:
    """Blank ballots are exempt, use no_blank_votes() to reject those."""
    return YesNoValidator(
        name=f"At least {limit} yes votes",
        description=f"A non-blank ballot must vote yes to at least {limit} options",
        check=lambda ballots, vote: [
            b for b in ballots if not b.is_blank and b.yes_count < limit
        ],
    )


@register_vote_type
class YesNoVote(Vote[YesNoBallot]):
    """Each option is voted yes, no, or left unvoted, independently."""

    type_name = "Yes-no"
    ballot_type = YesNoBallot
    particular_validator_type = YesNoValidator

    def count(self, force: bool = False) -> Dict[VoteOption, YesNoCount]:
        """
        Tally yes, no and blank per option.

        Args:
            force: Skip validation

        Returns:
            Counts for every option of the vote

        Raises:
            VoteValidationError: If force is False and any validator fails
        """
        with self._lock:
            if not force:
                self.validate_strict()

            totals = {option: [0, 0, 0] for option in self._options}
            for ballot in self._ballots:
                for option in self._options:
                    choice = ballot.choice(option)
                    if choice is YesNoChoice.YES:
                        totals[option][0] += 1
                    elif choice is YesNoChoice.NO:
                        totals[option][1] += 1
                    else:
                        totals[option][2] += 1
            ballot_count = len(self._ballots)

        logger.info(
            f"Counted {ballot_count} ballots over {len(totals)} options in '{self._name}'"
        )
        return {option: YesNoCount(*counts) for option, counts in totals.items()}

    def results_frame(self, force: bool = False) -> pd.DataFrame:
        """
        Get the tally as a DataFrame.

        Returns:
            DataFrame with option, yes, no, blank and total columns, in option order
        """
        counts = self.count(force=force)
        results_data = []
        for option, tally in counts.items():
            results_data.append(
                {
                    "option": option_name(option),
                    "yes": tally.yes,
                    "no": tally.no,
                    "blank": tally.blank,
                    "total": tally.yes + tally.no + tally.blank,
                }
            )
        return pd.DataFrame(results_data, columns=["option", "yes", "no", "blank", "total"])
