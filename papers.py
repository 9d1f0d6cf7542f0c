"""
Proxy for the external literature search API (arXiv Atom feed).
"""
import logging
import random
import xml.etree.ElementTree as ET
from typing import List

import requests
from fastapi import APIRouter, HTTPException, Query

import config

logger = logging.getLogger(__name__)

router = APIRouter(tags=["papers"])

ATOM = "{http://www.w3.org/2005/Atom}"

RANDOM_POOL_SIZE = 50


class PaperSearchError(Exception):
    pass


def _text(element, tag: str) -> str:
    found = element.find(ATOM + tag)
    if found is None or found.text is None:
        return ""
    return " ".join(found.text.split())


def parse_feed(xml_text: str) -> List[dict]:
    """Turn an Atom feed into ``{id, title, summary, authors, published, link}`` records."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise PaperSearchError(f"Malformed response from paper API: {e}")

    papers = []
    for entry in root.findall(ATOM + "entry"):
        entry_url = _text(entry, "id")
        link = entry_url
        for link_el in entry.findall(ATOM + "link"):
            if link_el.get("rel") == "alternate" or link_el.get("type") == "text/html":
                link = link_el.get("href", link)
                break
        papers.append({
            "id": entry_url.rstrip("/").rsplit("/", 1)[-1],
            "title": _text(entry, "title"),
            "summary": _text(entry, "summary"),
            "authors": [_text(a, "name") for a in entry.findall(ATOM + "author")],
            "published": _text(entry, "published"),
            "link": link,
        })
    return papers


def fetch_papers(query: str, max_results: int = 10) -> List[dict]:
    params = {
        "search_query": f"all:{query}",
        "start": 0,
        "max_results": max_results,
    }
    try:
        response = requests.get(config.PAPER_API_URL, params=params, timeout=config.PAPER_API_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise PaperSearchError(f"Paper API request failed: {e}")
    return parse_feed(response.text)


def _search(query: str, max_results: int) -> List[dict]:
    if not query.strip():
        raise HTTPException(400, "Search query is required")
    try:
        return fetch_papers(query.strip(), max_results)
    except PaperSearchError:
        logger.exception("Paper search for %r failed", query)
        raise HTTPException(500, "Failed to fetch papers")


@router.get("/search-papers")
def search_papers(query: str = "", max_results: int = Query(10, ge=1, le=100)):
    return _search(query, max_results)


@router.get("/random-papers")
def random_papers(query: str = "", count: int = Query(5, ge=1, le=RANDOM_POOL_SIZE)):
    papers = _search(query, RANDOM_POOL_SIZE)
    return random.sample(papers, min(count, len(papers)))
