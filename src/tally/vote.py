import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import (
    ClassVar,
    Dict,
    Generic,
    Hashable,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
    TypeVar,
)

from roster.constituent import Constituent
from roster.csv_configuration import CSVConfiguration

from .validators import (
    GenericValidator,
    Validator,
    VoteValidationError,
    VoteValidationResult,
)

logger = logging.getLogger(__name__)

VoteOption = Hashable


def option_name(option: VoteOption) -> str:
    """Display text for an option: its ``name`` attribute if it has one, else str()."""
    name = getattr(option, "name", None)
    return name if isinstance(name, str) else str(option)


class VoteStub(ABC):
    """
    One constituent's ballot.

    Subclasses hold the vote-kind specific values and know how to read and
    write themselves as one CSV line.
    """

    constituent: Constituent

    @classmethod
    @abstractmethod
    def bare_bones(cls, constituent: Constituent) -> "VoteStub":
        """An empty ballot for a constituent, mostly used by validators."""

    @property
    @abstractmethod
    def is_blank(self) -> bool:
        pass

    @classmethod
    @abstractmethod
    def from_csv_line(
        cls,
        values: Sequence[str],
        options: Sequence[VoteOption],
        constituent: Constituent,
        config: Optional[CSVConfiguration] = None,
    ) -> Optional["VoteStub"]:
        """Decode the option columns of one line; None when the line is invalid."""

    @abstractmethod
    def csv_value_for(
        self, option: VoteOption, config: Optional[CSVConfiguration] = None
    ) -> str:
        pass

    def to_csv_values(
        self,
        options: Sequence[VoteOption],
        config: Optional[CSVConfiguration] = None,
    ) -> List[str]:
        return [self.csv_value_for(option, config) for option in options]


B = TypeVar("B", bound=VoteStub)

_VOTE_TYPES: Dict[str, Type["Vote"]] = {}


def _check_vote_kind(cls: Type["Vote"]):
    type_name = getattr(cls, "type_name", None)
    ballot_type = getattr(cls, "ballot_type", None)
    if not isinstance(type_name, str) or not type_name:
        raise TypeError(f"{cls.__name__} must set a type_name")
    if not (isinstance(ballot_type, type) and issubclass(ballot_type, VoteStub)):
        raise TypeError(f"{cls.__name__} must set a VoteStub subclass as ballot_type")


def register_vote_type(cls: Type["Vote"]) -> Type["Vote"]:
    """Class decorator making a vote kind discoverable by its type name."""
    _check_vote_kind(cls)
    if cls.type_name in _VOTE_TYPES and _VOTE_TYPES[cls.type_name] is not cls:
        raise ValueError(f"Vote type '{cls.type_name}' is already registered")
    _VOTE_TYPES[cls.type_name] = cls
    return cls


def vote_type_for(type_name: str) -> Type["Vote"]:
    try:
        return _VOTE_TYPES[type_name]
    except KeyError:
        raise ValueError(f"Unknown vote type: {type_name}") from None


class Vote(ABC, Generic[B]):
    """
    A vote among a fixed set of constituents.

    All reads and writes on one instance are serialized by an instance lock,
    so a vote can be shared between threads; callers simply wait their turn.
    Getters return copies.
    """

    type_name: ClassVar[str]
    ballot_type: ClassVar[Type[VoteStub]]
    particular_validator_type: ClassVar[Type[Validator]] = Validator

    def __init__(
        self,
        name: str,
        options: Iterable[VoteOption],
        constituents: Iterable[Constituent] = (),
        ballots: Iterable[B] = (),
        generic_validators: Iterable[GenericValidator] = (),
        particular_validators: Iterable[Validator] = (),
        custom_data: Optional[Dict[str, str]] = None,
        id: Optional[str] = None,
    ):
        """
        Initialize a vote.

        Args:
            name: Name of the vote
            options: Options in column order; fixed for the life of the vote
            constituents: Constituents expected to vote, unique by identifier
            ballots: Ballots already cast
            generic_validators: Validators shared across vote kinds
            particular_validators: Validators specific to this vote kind
            custom_data: Free-form data kept for clients
            id: Unique identifier, generated when omitted
        """
        _check_vote_kind(type(self))

        self._lock = threading.RLock()
        self._id = id or uuid.uuid4().hex
        self._name = name
        self._options: Tuple[VoteOption, ...] = tuple(options)

        if len(set(self._options)) != len(self._options):
            raise ValueError("Vote options must be unique")

        self._constituents: Set[Constituent] = set()
        identifiers = set()
        for constituent in constituents:
            if constituent.identifier in identifiers:
                raise ValueError(f"Duplicate constituent identifier: {constituent.identifier}")
            identifiers.add(constituent.identifier)
            self._constituents.add(constituent)

        self._ballots: List[B] = []
        self._generic_validators: List[GenericValidator] = []
        self._particular_validators: List[Validator] = []
        self._custom_data: Dict[str, str] = dict(custom_data or {})

        self.add_ballots(ballots)
        for validator in generic_validators:
            self.add_generic_validator(validator)
        for validator in particular_validators:
            self.add_particular_validator(validator)

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @property
    def options(self) -> Tuple[VoteOption, ...]:
        return self._options

    @property
    def option_names(self) -> List[str]:
        return [option_name(option) for option in self._options]

    @property
    def constituents(self) -> Set[Constituent]:
        with self._lock:
            return set(self._constituents)

    @property
    def ballots(self) -> List[B]:
        with self._lock:
            return list(self._ballots)

    @property
    def generic_validators(self) -> List[GenericValidator]:
        with self._lock:
            return list(self._generic_validators)

    @property
    def particular_validators(self) -> List[Validator]:
        with self._lock:
            return list(self._particular_validators)

    @property
    def custom_data(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._custom_data)

    def _check_ballot(self, ballot: B):
        if not isinstance(ballot, self.ballot_type):
            raise TypeError(
                f"{self.type_name} votes take {self.ballot_type.__name__}, got {type(ballot).__name__}"
            )

    def add_ballot(self, ballot: B):
        self._check_ballot(ballot)
        with self._lock:
            self._ballots.append(ballot)

    def add_ballots(self, ballots: Iterable[B]):
        """Append a batch of ballots; nothing is appended if any of them has the wrong type."""
        batch = list(ballots)
        for ballot in batch:
            self._check_ballot(ballot)
        with self._lock:
            self._ballots.extend(batch)

    def add_generic_validator(self, validator: GenericValidator):
        if not isinstance(validator, GenericValidator):
            raise TypeError(f"Expected a GenericValidator, got {type(validator).__name__}")
        with self._lock:
            self._generic_validators.append(validator)

    def add_particular_validator(self, validator: Validator):
        if not isinstance(validator, self.particular_validator_type):
            raise TypeError(
                f"{self.type_name} votes take {self.particular_validator_type.__name__}, "
                f"got {type(validator).__name__}"
            )
        with self._lock:
            self._particular_validators.append(validator)

    def set_custom_data(self, key: str, value: Optional[str]):
        """Store a custom value; None removes the key."""
        with self._lock:
            if value is None:
                self._custom_data.pop(key, None)
            else:
                self._custom_data[key] = value

    def bare_ballot_for(self, constituent: Constituent) -> B:
        return self.ballot_type.bare_bones(constituent)

    def validate(self) -> List[VoteValidationResult]:
        """
        Run every validator against the current ballots.

        Generic validators run first, then particular ones; all of them run
        even after a failure.

        Returns:
            One result per validator, in run order
        """
        with self._lock:
            ballots = list(self._ballots)
            validators = self._generic_validators + self._particular_validators
            results = [validator.validate(ballots, self) for validator in validators]

        failed = [result.name for result in results if not result.passed]
        if failed:
            logger.warning(f"Vote '{self._name}' failed validation: {', '.join(failed)}")
        return results

    def validate_strict(self):
        """Run validate() and raise VoteValidationError if any validator failed."""
        failed = [result for result in self.validate() if not result.passed]
        if failed:
            raise VoteValidationError(failed)

    def __repr__(self):
        return f"<{type(self).__name__} {self._name!r} options={len(self._options)} ballots={len(self._ballots)}>"
