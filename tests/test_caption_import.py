"""
Tests for postplanner.scheduling.caption_import.

Covers:
    - generate_text_csv(): header, per-platform rows, quoting
    - parse_text_csv(): strict header and first-error-wins row checks
    - validate_caption_import() / apply_caption_import()
"""

from datetime import date

import pytest

from postplanner.scheduling.caption_import import (
    CaptionMatch,
    apply_caption_import,
    caption_key,
    generate_text_csv,
    parse_text_csv,
    validate_caption_import,
)
from postplanner.scheduling.models import Platform, PostRecord


@pytest.fixture
def records():
    return [
        PostRecord(
            date=date(2024, 1, 2),
            platform=Platform.INSTAGRAM,
            captions={"instagram": 'Say "cheese", friends'},
        ),
        PostRecord(
            date=date(2024, 1, 1),
            captions={"instagram": "IG legacy", "facebook": "FB legacy"},
        ),
        PostRecord(date=date(2024, 1, 3), platform=Platform.FACEBOOK),
    ]


# ===========================================================================
# Export
# ===========================================================================


class TestExport:
    def test_generate_text_csv(self, records):
        assert generate_text_csv(records) == (
            "platform,date,postText\n"
            "IG,2024-01-01,IG legacy\n"
            "FB,2024-01-01,FB legacy\n"
            'IG,2024-01-02,"Say ""cheese"", friends"'
        )

    def test_header_only_when_no_captions(self):
        assert generate_text_csv([PostRecord(date=date(2024, 1, 3))]) == "platform,date,postText"

    def test_export_parses_back(self, records):
        result = parse_text_csv(generate_text_csv(records))
        assert result.success
        assert [r.key for r in result.rows] == ["IG|2024-01-01", "FB|2024-01-01", "IG|2024-01-02"]
        assert result.rows[2].post_text == 'Say "cheese", friends'


# ===========================================================================
# Parse
# ===========================================================================


class TestParse:
    def test_multiline_text(self):
        content = 'platform,date,postText\nfb,2024-01-05,"Line one\nLine two"\n'
        result = parse_text_csv(content)
        assert result.success
        row = result.rows[0]
        assert row.platform is Platform.FACEBOOK
        assert row.date == date(2024, 1, 5)
        assert row.post_text == "Line one\nLine two"
        assert row.row_number == 2

    def test_empty_file(self):
        assert parse_text_csv("\n\n").error == "CSV file is empty"

    def test_bad_header(self):
        result = parse_text_csv("platform,day,text\nIG,2024-01-01,x\n")
        assert not result.success
        assert result.error.startswith("Invalid header. Expected: platform,date,postText.")

    def test_header_is_case_insensitive(self):
        assert parse_text_csv("Platform,Date,POSTTEXT\nIG,2024-01-01,x\n").success

    @pytest.mark.parametrize(
        "line, message",
        [
            ("IG,2024-01-01", "Row 2 has insufficient columns (expected 3, got 2)"),
            ("TT,2024-01-01,x", 'Row 2: Invalid platform "TT". Must be "IG" or "FB".'),
            ("IG,01/01/2024,x", 'Row 2: Invalid date format "01/01/2024". Must be YYYY-MM-DD.'),
            ("IG,2024-02-30,x", 'Row 2: Invalid date format "2024-02-30". Must be YYYY-MM-DD.'),
            ("IG,2024-01-01,  ", "Row 2: postText cannot be empty. This would wipe existing content."),
        ],
    )
    def test_row_errors(self, line, message):
        result = parse_text_csv(f"platform,date,postText\n{line}\n")
        assert not result.success
        assert result.error == message
        assert result.rows == []

    def test_duplicate_key(self):
        content = "platform,date,postText\nIG,2024-01-01,a\nFB,2024-01-01,b\nIG,2024-01-01,c\n"
        result = parse_text_csv(content)
        assert not result.success
        assert result.error == (
            "Duplicate key found: IG on 2024-01-01. "
            "Each platform+date combination must be unique."
        )

    def test_first_error_wins(self):
        content = "platform,date,postText\nTT,2024-01-01,a\nIG,bad,b\n"
        assert parse_text_csv(content).error.startswith("Row 2:")


# ===========================================================================
# Validate / apply
# ===========================================================================


class TestValidateAndApply:
    def _rows(self, content):
        result = parse_text_csv(content)
        assert result.success
        return result.rows

    def test_matching_and_skipped(self, records):
        rows = self._rows(
            "platform,date,postText\n"
            "IG,2024-01-01,new IG legacy\n"
            "FB,2024-01-02,no such facebook post\n"
            "FB,2024-01-03,new FB\n"
            "IG,2024-02-01,nothing here\n"
        )
        validation = validate_caption_import(rows, records)
        assert validation.valid
        assert validation.skipped == ["FB|2024-01-02", "IG|2024-02-01"]
        matches = validation.matched
        assert all(isinstance(m, CaptionMatch) for m in matches)
        assert [(m.key, m.caption_key) for m in matches] == [
            ("2024-01-01", "IG|2024-01-01"),
            ("2024-01-03-facebook", "FB|2024-01-03"),
        ]
        assert matches[0].old_text == "IG legacy"
        assert matches[0].new_text == "new IG legacy"
        assert matches[1].old_text == ""

    @pytest.mark.parametrize("reverse", [False, True])
    def test_platform_record_wins_over_legacy_on_same_date(self, reverse):
        fb = PostRecord(
            date=date(2024, 1, 15), platform=Platform.FACEBOOK, captions={"facebook": "platform"}
        )
        legacy = PostRecord(date=date(2024, 1, 15), captions={"facebook": "legacy"})
        records = [legacy, fb] if reverse else [fb, legacy]
        rows = self._rows(
            "platform,date,postText\n"
            "FB,2024-01-15,new FB\n"
            "IG,2024-01-15,new IG\n"
        )
        validation = validate_caption_import(rows, records)
        assert [(m.caption_key, m.key) for m in validation.matched] == [
            ("FB|2024-01-15", "2024-01-15-facebook"),
            ("IG|2024-01-15", "2024-01-15"),
        ]
        assert validation.matched[0].old_text == "platform"

    def test_apply_returns_updated_copies(self, records):
        rows = self._rows(
            "platform,date,postText\n"
            "IG,2024-01-01,new IG\n"
            "FB,2024-01-01,new FB\n"
        )
        validation = validate_caption_import(rows, records)
        updated = apply_caption_import(validation, records)
        assert len(updated) == 1
        record = updated[0]
        assert record.key == "2024-01-01"
        assert record.captions == {"instagram": "new IG", "facebook": "new FB"}
        assert record.status == "edited"
        # originals untouched
        assert records[1].captions == {"instagram": "IG legacy", "facebook": "FB legacy"}

    def test_caption_key(self):
        assert caption_key(Platform.INSTAGRAM, date(2024, 1, 15)) == "IG|2024-01-15"
