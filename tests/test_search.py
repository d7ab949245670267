import httpx
import pytest

from dupecheck.services.query import SearchClient, SearchDecodeError, SearchError

QUERY = "http://es:9200/pass/_search?q=doi:%2210.1%2Fx%22"


def client_for(handler):
    return SearchClient("http://es:9200/pass/_search", client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_context_is_derived_from_base_uri():
    search = SearchClient("https://es.example.org:9243/pass/_search", max_result_size=50)
    assert search.render_context() == {
        "scheme": "https",
        "host_and_port": "es.example.org:9243",
        "index": "pass",
        "size": 50,
    }


def test_invalid_base_uri_is_rejected():
    with pytest.raises(ValueError):
        SearchClient("not a url")


def test_zero_hits():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"hits": {"total": 0, "hits": []}})

    match = client_for(handler).perform(QUERY)
    assert match.hit_count == 0
    assert match.matching_uris == []
    assert match.query_url == QUERY
    assert requests[0].method == "GET"
    assert requests[0].content == b""


def test_hits_in_response_order():
    body = {
        "hits": {
            "total": 2,
            "hits": [
                {"_source": {"@id": "http://repo/pubs/9"}},
                {"_source": {"@id": "http://repo/pubs/3"}},
            ],
        }
    }
    match = client_for(lambda r: httpx.Response(200, json=body)).perform(QUERY)
    assert match.hit_count == 2
    assert match.matching_uris == ["http://repo/pubs/9", "http://repo/pubs/3"]
    assert match.is_duplicate


def test_total_as_object():
    body = {"hits": {"total": {"value": 1, "relation": "eq"}, "hits": [{"_source": {"@id": "x"}}]}}
    match = client_for(lambda r: httpx.Response(200, json=body)).perform(QUERY)
    assert match.hit_count == 1
    assert match.matching_uris == ["x"]


def test_unexpected_status_embeds_diagnostics():
    search = client_for(lambda r: httpx.Response(400, text="parse_exception: bad query"))
    with pytest.raises(SearchError) as excinfo:
        search.perform(QUERY)
    err = excinfo.value
    assert QUERY in str(err)
    assert "400" in str(err)
    assert "Bad Request" in str(err)
    assert "parse_exception" in str(err)
    assert err.status_code == 400
    assert err.body == "parse_exception: bad query"


def test_malformed_body_is_a_decode_error():
    search = client_for(lambda r: httpx.Response(200, text="<html>not json</html>"))
    with pytest.raises(SearchDecodeError) as excinfo:
        search.perform(QUERY)
    assert QUERY in str(excinfo.value)


def test_missing_hits_is_a_decode_error():
    search = client_for(lambda r: httpx.Response(200, json={"took": 3}))
    with pytest.raises(SearchDecodeError):
        search.perform(QUERY)


def test_transport_failure_is_a_search_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SearchError) as excinfo:
        client_for(handler).perform(QUERY)
    assert excinfo.value.status_code is None


def test_hits_that_are_not_an_object_are_a_decode_error():
    for body in ({"hits": []}, {"hits": "x"}, {"hits": {"total": 1, "hits": ["not-a-hit"]}}):
        search = client_for(lambda r, body=body: httpx.Response(200, json=body))
        with pytest.raises(SearchDecodeError):
            search.perform(QUERY)
