"""Extract title, description and image from an HTML page.

Each field is looked up in order: Open Graph tag, Twitter card tag, then a generic
fallback. The first non-empty value wins.
"""
from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urljoin

from bs4 import BeautifulSoup

# (tag name, attribute filter, attribute holding the value; None means the tag text)
_Source = tuple[str, dict[str, str], str | None]

TITLE_SOURCES: tuple[_Source, ...] = (
    ("meta", {"property": "og:title"}, "content"),
    ("meta", {"name": "twitter:title"}, "content"),
    ("title", {}, None),
)

DESCRIPTION_SOURCES: tuple[_Source, ...] = (
    ("meta", {"property": "og:description"}, "content"),
    ("meta", {"name": "twitter:description"}, "content"),
    ("meta", {"name": "description"}, "content"),
)

IMAGE_SOURCES: tuple[_Source, ...] = (
    ("meta", {"property": "og:image"}, "content"),
    ("meta", {"name": "twitter:image"}, "content"),
    ("link", {"rel": "image_src"}, "href"),
)


@dataclass(frozen=True)
class PageFields:
    title: str | None = None
    description: str | None = None
    image: str | None = None


def _clean(value: object) -> str | None:
    if isinstance(value, list):
        value = " ".join(str(v) for v in value)
    if not isinstance(value, str):
        return None
    cleaned = " ".join(value.split())
    return cleaned or None


def _first_value(soup: BeautifulSoup, sources: tuple[_Source, ...]) -> str | None:
    for tag_name, attrs, attribute in sources:
        tag = soup.find(tag_name, attrs=attrs)
        if tag is None:
            continue
        value = _clean(tag.get_text() if attribute is None else tag.get(attribute))
        if value:
            return value
    return None


def extract_page_fields(html: str, *, base_url: str) -> PageFields:
    soup = BeautifulSoup(html or "", "html.parser")
    image = _first_value(soup, IMAGE_SOURCES)
    return PageFields(
        title=_first_value(soup, TITLE_SOURCES),
        description=_first_value(soup, DESCRIPTION_SOURCES),
        image=urljoin(base_url, image) if image else None,
    )
