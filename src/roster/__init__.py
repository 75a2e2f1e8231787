"""
Constituent rosters and the CSV templates used to read and write them.

- Constituent: a voter, keyed by its normalized identifier
- CSVConfiguration: validated template for vote and roster CSV files
- constituents_to_csv / constituents_from_csv: roster export and import
"""

from .constituent import Constituent
from .constituents_csv import (
    ConstituentDecodeError,
    InvalidCSVError,
    InvalidIdentifierError,
    InvalidTagError,
    NameTooLongError,
    TooManyLinesError,
    constituents_from_csv,
    constituents_to_csv,
)
from .csv_configuration import CSVConfiguration, CSVConfigurationError

__all__ = [
    "Constituent",
    "CSVConfiguration",
    "CSVConfigurationError",
    "ConstituentDecodeError",
    "InvalidCSVError",
    "InvalidIdentifierError",
    "InvalidTagError",
    "NameTooLongError",
    "TooManyLinesError",
    "constituents_from_csv",
    "constituents_to_csv",
]
