from unittest.mock import patch

import pytest

from roster.constituent import Constituent
from roster.constituents_csv import (
    DEFAULT_HEADER,
    TAGGED_HEADER,
    ConstituentDecodeError,
    InvalidCSVError,
    InvalidIdentifierError,
    InvalidTagError,
    NameTooLongError,
    TooManyLinesError,
    constituents_from_csv,
    constituents_to_csv,
)
from roster.csv_configuration import (
    EXPORT_HEADER_KEY,
    EXPORT_SHOW_TAGS_KEY,
    CSVConfiguration,
)


def tagged_config(**extra):
    return CSVConfiguration(
        name="Tagged",
        pre_headers=["Id"],
        pre_values=["{constituentID}"],
        option_header="{option name}",
        special_keys={EXPORT_SHOW_TAGS_KEY: "1", **extra},
    )


@pytest.mark.unit
class TestConstituent:
    """Test the constituent value record."""

    def test_display_name(self):
        assert Constituent(identifier="s1", name="Alice").display_name() == "Alice"
        assert Constituent(identifier="s1").display_name() == "s1"

    def test_from_identifier(self):
        assert Constituent.from_identifier("s1") == Constituent(identifier="s1")

    def test_equality_covers_all_fields(self):
        assert Constituent("s1", "Alice", "x") != Constituent("s1", "Alice", "y")
        assert len({Constituent("s1"), Constituent("s1"), Constituent("s1", "A")}) == 2


@pytest.mark.unit
class TestExport:
    """Test roster export."""

    def test_default_header_sorted_by_identifier(self, sample_constituents, default_config):
        csv = constituents_to_csv(reversed(sample_constituents), default_config)

        assert csv.split("\n") == [
            DEFAULT_HEADER,
            "Alice,s123",
            "Bob,s456",
            "Charlie,s789",
            "s999,s999",
        ]

    def test_tagged_export(self, sample_constituents):
        csv = constituents_to_csv(sample_constituents, tagged_config())

        assert csv.split("\n") == [
            TAGGED_HEADER,
            "Alice,s123,board",
            "Bob,s456,",
            "Charlie,s789,staff",
            "s999,s999,",
        ]

    def test_custom_header_wins(self, sample_constituents, smkid_config):
        csv = constituents_to_csv(sample_constituents[:1], smkid_config)
        assert csv == "Navn,Studienummer\nAlice,s123"

    def test_empty_roster(self, default_config):
        assert constituents_to_csv([], default_config) == DEFAULT_HEADER


@pytest.mark.unit
class TestImport:
    """Test roster import and its rejections."""

    def test_basic_import(self):
        constituents = constituents_from_csv("Name,Identifier\nAlice,S1\n,s2\ns3,S3")

        assert constituents == [
            Constituent(identifier="s1", name="Alice"),
            Constituent(identifier="s2"),
            Constituent(identifier="s3"),
        ]

    def test_identifier_normalization(self):
        """Test trimming, lowercasing and dropping a name equal to the identifier."""
        [constituent] = constituents_from_csv("Name,Identifier\n abc , ABC ")

        assert constituent.identifier == "abc"
        assert constituent.name is None
        assert constituent.display_name() == "abc"

    def test_tagged_import(self):
        constituents = constituents_from_csv(
            "Name,Identifier,Tag\nAlice,s1,board\nBob,s2,"
        )

        assert constituents[0].tag == "board"
        assert constituents[1].tag is None

    def test_custom_header_import(self, smkid_config):
        constituents = constituents_from_csv(
            "Navn,Studienummer\nAlice,s1", config=smkid_config
        )
        assert constituents == [Constituent(identifier="s1", name="Alice")]

    def test_custom_header_requires_config(self):
        with pytest.raises(InvalidCSVError, match="unrecognized header"):
            constituents_from_csv("Navn,Studienummer\nAlice,s1")

    def test_custom_header_never_has_tags(self):
        config = tagged_config(**{EXPORT_HEADER_KEY: "Navn,Nummer"})
        with pytest.raises(InvalidCSVError):
            constituents_from_csv("Navn,Nummer\nAlice,s1,board", config=config)

    def test_blank_lines_are_skipped(self):
        constituents = constituents_from_csv("Name,Identifier\n\nAlice,s1\n\n")
        assert len(constituents) == 1

    def test_crlf_line_endings(self):
        constituents = constituents_from_csv("Name,Identifier\r\nAlice,s1\r\nBob,s2")
        assert [c.identifier for c in constituents] == ["s1", "s2"]

    @pytest.mark.parametrize("text", ["Name,Identifier\nA;B,s1", "Name,Identifier\nA\tB,s1"])
    def test_forbidden_characters(self, text):
        with pytest.raises(InvalidCSVError, match="tabs and semicolons"):
            constituents_from_csv(text)

    @pytest.mark.parametrize("text", ["", "\n\n", "Identifier,Name\nAlice,s1", "name,identifier"])
    def test_missing_or_wrong_header(self, text):
        with pytest.raises(InvalidCSVError):
            constituents_from_csv(text)

    @pytest.mark.parametrize(
        "text",
        [
            "Name,Identifier\nAlice",
            "Name,Identifier\nAlice,s1,",
            "Name,Identifier,Tag\nAlice,s1",
        ],
    )
    def test_wrong_field_count(self, text):
        """Test that empty trailing fields still count toward the arity."""
        with pytest.raises(InvalidCSVError, match="expected"):
            constituents_from_csv(text)

    def test_empty_identifier(self):
        with pytest.raises(InvalidIdentifierError):
            constituents_from_csv("Name,Identifier\nAlice,  ")

    def test_tag_with_leading_dash(self):
        with pytest.raises(InvalidTagError):
            constituents_from_csv("Name,Identifier,Tag\nAlice,s1,-internal")

    def test_length_limits(self):
        with pytest.raises(NameTooLongError):
            constituents_from_csv("Name,Identifier\nAlice,abcdef", max_name_length=5)
        with pytest.raises(NameTooLongError):
            constituents_from_csv("Name,Identifier\nAlexandra,s1", max_name_length=5)
        with pytest.raises(InvalidTagError):
            constituents_from_csv(
                "Name,Identifier,Tag\nAl,s1,abcdef", max_name_length=5
            )

    @patch.dict("os.environ", {"VOTEKIT_MAX_NAME_LENGTH": "3"})
    def test_length_limit_from_environment(self):
        with pytest.raises(NameTooLongError):
            constituents_from_csv("Name,Identifier\nAl,abcd")

    def test_one_bad_row_rejects_everything(self):
        """Test that no partial roster comes back."""
        with patch("roster.constituents_csv.logger") as mock_logger:
            with pytest.raises(ConstituentDecodeError):
                constituents_from_csv("Name,Identifier\nAlice,s1\nBob,\nCharlie,s3")
            mock_logger.warning.assert_called_once()

    def test_line_limit(self):
        """Test that 10,001 valid lines are rejected."""
        rows = [f"Voter {i},v{i}" for i in range(10_000)]
        text = "\n".join(["Name,Identifier"] + rows)

        with pytest.raises(TooManyLinesError):
            constituents_from_csv(text)

    def test_line_limit_boundary(self):
        rows = [f"Voter {i},v{i}" for i in range(9_999)]
        text = "\n".join(["Name,Identifier"] + rows)

        assert len(constituents_from_csv(text)) == 9_999


@pytest.mark.unit
@pytest.mark.invariant
class TestRoundTrip:
    """Test that export followed by import gives back the roster."""

    def test_round_trip_default(self, sample_constituents, default_config):
        untagged = [
            Constituent(identifier=c.identifier, name=c.name)
            for c in sample_constituents
        ]
        csv = constituents_to_csv(untagged, default_config)

        assert set(constituents_from_csv(csv)) == set(untagged)

    def test_round_trip_tagged(self, sample_constituents):
        csv = constituents_to_csv(sample_constituents, tagged_config())
        assert set(constituents_from_csv(csv)) == set(sample_constituents)

    def test_round_trip_custom_header_drops_tags(self, sample_constituents):
        """Test that show-tags under a custom header still writes two columns."""
        config = tagged_config(**{EXPORT_HEADER_KEY: "Navn,Nummer"})

        csv = constituents_to_csv(sample_constituents, config)

        assert csv.split("\n")[:3] == ["Navn,Nummer", "Alice,s123", "Bob,s456"]
        assert set(constituents_from_csv(csv, config=config)) == {
            Constituent(identifier=c.identifier, name=c.name) for c in sample_constituents
        }
