"""Tests for XML/CSV to JSON conversion."""

import json

import pytest

from clipsmith.clipboard.convert import parse_csv, to_json_from_xml_or_csv, xml_to_dict
from clipsmith.core.errors import ConversionError


class TestXml:
    def test_repeated_children_and_attributes(self):
        text = '<root><item id="1">a</item><item id="2">b</item><name>x</name></root>'

        assert json.loads(to_json_from_xml_or_csv(text)) == {
            "root": {
                "item": [{"@id": "1", "#text": "a"}, {"@id": "2", "#text": "b"}],
                "name": "x",
            }
        }

    def test_namespaces_are_stripped(self):
        assert xml_to_dict('<a xmlns="urn:x"><b>1</b></a>') == {"a": {"b": "1"}}

    def test_empty_leaf_is_null(self):
        assert xml_to_dict("<a><b/></a>") == {"a": {"b": None}}


class TestCsv:
    def test_comma_table(self):
        text = "name,age\nalice,30\nbob,25\n"

        assert json.loads(to_json_from_xml_or_csv(text)) == [
            ["name", "age"],
            ["alice", "30"],
            ["bob", "25"],
        ]

    def test_semicolon_table(self):
        assert parse_csv("a;b;c\n1;2;3\n4;5;6") == [["a", "b", "c"], ["1", "2", "3"], ["4", "5", "6"]]

    def test_ragged_rows_rejected(self):
        assert parse_csv("a,b,c\n1,2\n3,4,5") is None

    def test_single_row_rejected(self):
        assert parse_csv("a,b,c") is None


class TestRejections:
    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_empty_text(self, text):
        with pytest.raises(ConversionError, match="empty"):
            to_json_from_xml_or_csv(text)

    def test_already_json(self):
        """Converting twice fails the second time, leaving JSON untouched."""
        once = to_json_from_xml_or_csv("<a><b>1</b></a>")
        with pytest.raises(ConversionError, match="already JSON"):
            to_json_from_xml_or_csv(once)

    def test_prose_is_neither(self):
        with pytest.raises(ConversionError, match="neither XML nor CSV"):
            to_json_from_xml_or_csv("Just a sentence about nothing")

    @pytest.mark.parametrize(
        "text",
        [
            "Hello, world",
            "Dear Bob,\nThanks, see you soon.",
            "Apples; pears\n",
        ],
    )
    def test_comma_prose_is_not_a_table(self, text):
        assert parse_csv(text) is None
        with pytest.raises(ConversionError, match="neither XML nor CSV"):
            to_json_from_xml_or_csv(text)
