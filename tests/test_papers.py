import pytest
import requests

import papers

FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>arXiv Query</title>
  <entry>
    <id>http://arxiv.org/abs/1706.03762v7</id>
    <published>2017-06-12T17:57:34Z</published>
    <title>Attention Is All
      You Need</title>
    <summary>  The dominant sequence transduction models
      are based on recurrent networks. </summary>
    <author><name>Ashish Vaswani</name></author>
    <author><name>Noam Shazeer</name></author>
    <link href="http://arxiv.org/abs/1706.03762v7" rel="alternate" type="text/html"/>
    <link title="pdf" href="http://arxiv.org/pdf/1706.03762v7" rel="related" type="application/pdf"/>
  </entry>
  <entry>
    <id>http://arxiv.org/abs/1810.04805v2</id>
    <published>2018-10-11T00:50:01Z</published>
    <title>BERT</title>
    <summary>Pre-training of deep bidirectional transformers.</summary>
    <author><name>Jacob Devlin</name></author>
  </entry>
</feed>
"""


class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def upstream(monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append(params)
        return FakeResponse(FEED)

    monkeypatch.setattr(papers.requests, "get", fake_get)
    return calls


def test_parse_feed_normalizes_entries():
    result = papers.parse_feed(FEED)
    assert result[0] == {
        "id": "1706.03762v7",
        "title": "Attention Is All You Need",
        "summary": "The dominant sequence transduction models are based on recurrent networks.",
        "authors": ["Ashish Vaswani", "Noam Shazeer"],
        "published": "2017-06-12T17:57:34Z",
        "link": "http://arxiv.org/abs/1706.03762v7",
    }
    assert result[1]["link"] == "http://arxiv.org/abs/1810.04805v2"


def test_parse_feed_rejects_garbage():
    with pytest.raises(papers.PaperSearchError):
        papers.parse_feed("<feed>")


def test_search_papers(client, upstream):
    r = client.get("/search-papers", params={"query": "transformers", "max_results": 2})
    assert r.status_code == 200
    assert [p["id"] for p in r.json()] == ["1706.03762v7", "1810.04805v2"]
    assert upstream[0]["search_query"] == "all:transformers"
    assert upstream[0]["max_results"] == 2


def test_random_papers_samples(client, upstream):
    r = client.get("/random-papers", params={"query": "transformers", "count": 1})
    assert r.status_code == 200
    assert len(r.json()) == 1
    assert r.json()[0]["id"] in {"1706.03762v7", "1810.04805v2"}


def test_empty_query(client, upstream):
    assert client.get("/search-papers").status_code == 400
    assert upstream == []


def test_upstream_failure(client, monkeypatch):
    def failing_get(url, params=None, timeout=None):
        raise requests.ConnectionError("boom")

    monkeypatch.setattr(papers.requests, "get", failing_get)
    r = client.get("/search-papers", params={"query": "nlp"})
    assert r.status_code == 500
    assert r.json()["message"] == "Failed to fetch papers"


def test_upstream_error_status(client, monkeypatch):
    monkeypatch.setattr(papers.requests, "get", lambda url, params=None, timeout=None: FakeResponse("", 503))
    assert client.get("/random-papers", params={"query": "nlp"}).status_code == 500
