"""Tests for the HTML and JSON selector engines."""

import pytest

from exceptions import CapabilityFault
from query import HtmlQuery, JsonQuery, query_for
from scraper import parse_html


def test_json_dotted_paths() -> None:
    q = JsonQuery()
    store = {"address": {"city": "Ottawa", "lines": ["1 Main St", "Unit 4"]}, "open": True}
    assert q.select(store, "address.city") == ["Ottawa"]
    assert q.select(store, "address.lines.1") == ["Unit 4"]
    assert q.select(store, "address.lines.5") == []
    assert q.select(store, "address.zip") == []
    assert q.select(store, "open.now") == []
    assert q.text(True) == "true"
    assert q.text({"a": 1}) == '{"a":1}'


def test_json_null_is_absent() -> None:
    assert JsonQuery().select({"phone": None}, "phone") == []
    assert JsonQuery().attribute({"phone": None}, "phone") is None


@pytest.mark.parametrize("path", ["address..city", ".city", "city."])
def test_json_malformed_path_faults(path) -> None:
    with pytest.raises(CapabilityFault):
        JsonQuery().select({"city": "Ottawa"}, path)


def test_json_non_object_fragment_faults() -> None:
    with pytest.raises(CapabilityFault):
        JsonQuery().select(["not", "an", "object"], "city")


def test_html_text_collapses_whitespace() -> None:
    node = parse_html("<p>  12  Bank\n\tSt </p>").p
    assert HtmlQuery().text(node) == "12 Bank St"


def test_html_rejects_non_tag() -> None:
    with pytest.raises(CapabilityFault):
        HtmlQuery().select({"city": "Ottawa"}, ".city")


def test_query_for_dispatch() -> None:
    assert isinstance(query_for(parse_html("<div></div>").div), HtmlQuery)
    assert isinstance(query_for({}), JsonQuery)
    with pytest.raises(CapabilityFault):
        query_for("raw text")


def test_html_text_and_attribute_reject_non_tag() -> None:
    with pytest.raises(CapabilityFault):
        HtmlQuery().text(None)
    with pytest.raises(CapabilityFault):
        HtmlQuery().attribute("<div data-id='1'>", "data-id")


def test_json_text_and_attribute_reject_non_json() -> None:
    with pytest.raises(CapabilityFault):
        JsonQuery().text(None)
    with pytest.raises(CapabilityFault):
        JsonQuery().attribute(object(), "city")
    assert JsonQuery().attribute("plain string", "city") is None


def test_json_non_ascii_digit_segment_is_no_match() -> None:
    assert JsonQuery().select({"phones": ["613-555-0101"]}, "phones.²") == []
    assert JsonQuery().select({"phones": ["613-555-0101"]}, "phones.0") == ["613-555-0101"]
