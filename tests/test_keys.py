import pytest

from dupecheck.models.container import Container
from dupecheck.services.query import KvPair, MissingKeysError, extract_keys

NS = "http://oapass.org/ns/pass#"


def test_extract_binds_every_value_and_type():
    c = Container(
        uri="http://repo/pubs/1",
        types=["http://www.w3.org/ns/ldp#Container", NS + "Article"],
        properties={NS + "title": ["A", "B"], NS + "doi": ["10.1/x"]},
    )
    pairs = extract_keys(c, ["title", "@type"])
    assert sorted((p.key, p.value) for p in pairs) == [("@type", "Article"), ("title", "A"), ("title", "B")]


def test_extract_uses_custom_namespace():
    c = Container(uri="u", types=["NS#Article"], properties={"NS#title": ["A", "B"]}, namespace="NS#")
    pairs = extract_keys(c, ["title", "@type"])
    assert set(pairs) == {KvPair("title", "A"), KvPair("title", "B"), KvPair("@type", "Article")}


def test_extract_matches_keys_by_suffix():
    c = Container(uri="u", types=[NS + "Journal"], properties={NS + "journalName": ["Nature"]})
    assert extract_keys(c, ["Name"]) == [KvPair("Name", "Nature")]


def test_extract_returns_pairs_in_key_order():
    c = Container(uri="u", types=[NS + "Publication"], properties={NS + "doi": ["d"], NS + "title": ["t"]})
    pairs = extract_keys(c, ["title", "doi", "@type"])
    assert [p.key for p in pairs] == ["title", "doi", "@type"]


def test_extract_ignores_properties_outside_the_namespace():
    c = Container(uri="u", types=[NS + "Publication"], properties={"http://purl.org/dc/terms/title": ["t"]})
    with pytest.raises(MissingKeysError) as excinfo:
        extract_keys(c, ["title"])
    assert excinfo.value.keys == ["title"]


def test_extract_names_all_missing_keys():
    c = Container(uri="http://repo/pubs/2", types=["http://example.org/Other"], properties={NS + "title": ["t"]})
    with pytest.raises(MissingKeysError) as excinfo:
        extract_keys(c, ["doi", "title", "@type", "pmid"])
    assert excinfo.value.keys == ["doi", "@type", "pmid"]
    assert "doi" in str(excinfo.value)
    assert excinfo.value.uri == "http://repo/pubs/2"
