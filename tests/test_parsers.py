"""Tests for the content sheet parser."""
from __future__ import annotations

import pytest

from phrase_trainer.categories import normalize_category
from phrase_trainer.errors import MalformedSourceError
from phrase_trainer.parsers.sheet_parser import is_published, parse_sheet_csv, transform_row

HEADER = "id,code,text_target,text_native,audio_target_url,audio_native_url,category,status\n"


class TestParseSheet:
    def test_parse_basic(self, sheet_csv):
        items = parse_sheet_csv(sheet_csv)
        assert [i.id for i in items] == ["g1", "g2", "g3", "f1", "x1"]

    def test_drafts_dropped(self, sheet_csv):
        items = parse_sheet_csv(sheet_csv)
        assert "d1" not in {i.id for i in items}

    def test_fields_mapped(self, sheet_csv):
        g1 = parse_sheet_csv(sheet_csv)[0]
        assert g1.code == "GR001"
        assert g1.text_target == "Ẹ káàárọ̀"
        assert g1.text_native == "Good morning"
        assert g1.audio.target == "https://cdn.example.com/g1-yo.mp3"
        assert g1.audio.native == "https://cdn.example.com/g1-en.mp3"

    def test_category_normalized(self, sheet_csv):
        items = {i.id: i for i in parse_sheet_csv(sheet_csv)}
        assert items["g2"].category == "greetings"
        assert items["x1"].category == "misc"

    def test_blank_status_is_published(self, sheet_csv):
        items = {i.id: i for i in parse_sheet_csv(sheet_csv)}
        assert items["g3"].publish_state == "published"

    def test_header_case_insensitive(self):
        text = HEADER.upper() + "a,C1,x,y,,,food,published\n"
        assert parse_sheet_csv(text)[0].code == "C1"

    def test_bom_stripped(self):
        text = "\ufeff" + HEADER + "a,C1,x,y,,,food,published\n"
        assert len(parse_sheet_csv(text)) == 1

    def test_blank_lines_skipped(self):
        text = HEADER + "\n,,,,,,,\na,C1,x,y,,,food,published\n"
        assert len(parse_sheet_csv(text)) == 1

    def test_row_without_code_dropped(self):
        text = HEADER + "a,,x,y,,,food,published\nb,C2,x,y,,,food,published\n"
        assert [i.id for i in parse_sheet_csv(text)] == ["b"]

    def test_empty_body(self):
        with pytest.raises(MalformedSourceError):
            parse_sheet_csv("   ")

    def test_missing_columns(self):
        with pytest.raises(MalformedSourceError, match="text_native"):
            parse_sheet_csv("id,code,text_target\n1,C1,x\n")

    def test_not_csv(self):
        with pytest.raises(MalformedSourceError):
            parse_sheet_csv("<html><body>Sign in</body></html>")

    def test_only_drafts(self):
        with pytest.raises(MalformedSourceError):
            parse_sheet_csv(HEADER + "a,C1,x,y,,,food,draft\n")


class TestTransformRow:
    def test_disabled_dropped(self):
        assert transform_row({"id": "a", "code": "C", "status": "Disabled"}) is None

    @pytest.mark.parametrize("status,expected", [
        ("published", True),
        ("", True),
        (None, True),
        ("DRAFT", False),
        (" draft ", False),
        ("disabled", False),
    ])
    def test_is_published(self, status, expected):
        assert is_published(status) is expected


class TestNormalizeCategory:
    @pytest.mark.parametrize("raw,expected", [
        ("food", "food"),
        (" FOOD ", "food"),
        ("weather", "misc"),
        ("", "misc"),
        (None, "misc"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_category(raw) == expected
