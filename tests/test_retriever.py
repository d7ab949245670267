import base64

import httpx
import pytest

from dupecheck.services.retriever import LdpRetriever, RetrieverError, parse_jsonld

NS = "http://oapass.org/ns/pass#"
URI = "http://fcrepo:8080/fcrepo/rest/publications/ab/cd"

JSONLD = [
    {
        "@id": URI,
        "@type": [NS + "Publication", "http://www.w3.org/ns/ldp#RDFSource"],
        NS + "title": [{"@value": "Quantum things"}],
        NS + "doi": [{"@value": "10.1000/182"}],
        NS + "journal": [{"@id": "http://fcrepo:8080/fcrepo/rest/journals/1"}],
        "http://fedora.info/definitions/v4/repository#created": [{"@value": "2021-01-01T00:00:00Z"}],
        "http://www.w3.org/ns/ldp#contains": [{"@id": URI + "/a"}, {"@id": URI + "/b"}],
    },
    {"@id": URI + "/a"},
]


def retriever_for(handler, **kwargs):
    return LdpRetriever(client=httpx.Client(transport=httpx.MockTransport(handler), **kwargs))


def test_parse_jsonld_builds_container():
    c = parse_jsonld(URI, JSONLD)
    assert c.uri == URI
    assert c.pass_type == "Publication"
    assert c.contains == (URI + "/a", URI + "/b")
    assert c.pass_properties() == {
        NS + "title": ("Quantum things",),
        NS + "doi": ("10.1000/182",),
        NS + "journal": ("http://fcrepo:8080/fcrepo/rest/journals/1",),
    }
    assert "http://fedora.info/definitions/v4/repository#created" in c.properties


def test_parse_jsonld_requires_the_requested_node():
    with pytest.raises(ValueError):
        parse_jsonld(URI + "/zz", JSONLD)


def test_get_requests_jsonld_with_containment():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=JSONLD)

    c = retriever_for(handler).get(URI)
    assert c.pass_type == "Publication"
    assert requests[0].headers["Accept"] == "application/ld+json"
    assert "PreferContainment" in requests[0].headers["Prefer"]


def test_get_sends_basic_auth():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=JSONLD)

    retriever = retriever_for(handler, auth=httpx.BasicAuth("fedoraAdmin", "moo"))
    retriever.get(URI)
    expected = "Basic " + base64.b64encode(b"fedoraAdmin:moo").decode("ascii")
    assert requests[0].headers["Authorization"] == expected


def test_get_unexpected_status():
    retriever = retriever_for(lambda r: httpx.Response(404, text="not found"))
    with pytest.raises(RetrieverError) as excinfo:
        retriever.get(URI)
    assert excinfo.value.status_code == 404
    assert URI in str(excinfo.value)


def test_get_malformed_body():
    retriever = retriever_for(lambda r: httpx.Response(200, text="<rdf/>"))
    with pytest.raises(RetrieverError):
        retriever.get(URI)


def test_get_accepts_any_success_status():
    retriever = retriever_for(lambda r: httpx.Response(203, json=JSONLD))
    assert retriever.get(URI).pass_type == "Publication"
