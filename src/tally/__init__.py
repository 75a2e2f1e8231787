"""
Vote kinds, ballot validation and tallying.

This module provides the shared vote contract and the yes/no reference kind:
- Vote / VoteStub: abstract vote and ballot, keyed by a registered type name
- Validators: generic (any vote kind) and particular (one vote kind) checks
- YesNoVote: yes/no/blank tally per option
- vote_to_csv / vote_from_csv: whole-vote CSV export and import
"""

from .validators import (
    GenericValidator,
    Validator,
    VoteValidationError,
    VoteValidationResult,
    everyone_has_voted,
    no_blank_votes,
    no_foreign_votes,
    one_vote_per_constituent,
)
from .vote import Vote, VoteStub, option_name, register_vote_type, vote_type_for
from .vote_csv import CSVImportReport, vote_from_csv, vote_to_csv
from .yes_no import (
    YesNoBallot,
    YesNoChoice,
    YesNoCount,
    YesNoValidator,
    YesNoVote,
    max_yes_votes,
    min_yes_votes,
    no_foreign_options,
)

__all__ = [
    "Vote",
    "VoteStub",
    "option_name",
    "register_vote_type",
    "vote_type_for",
    "Validator",
    "GenericValidator",
    "VoteValidationError",
    "VoteValidationResult",
    "everyone_has_voted",
    "no_blank_votes",
    "no_foreign_votes",
    "one_vote_per_constituent",
    "YesNoBallot",
    "YesNoChoice",
    "YesNoCount",
    "YesNoValidator",
    "YesNoVote",
    "max_yes_votes",
    "min_yes_votes",
    "no_foreign_options",
    "CSVImportReport",
    "vote_from_csv",
    "vote_to_csv",
]
