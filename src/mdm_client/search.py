# MDM Client
# File: search.py
# Version: v2

"""Search criteria contracts and the Atom feed reader for search results.

The service answers a search with an Atom feed: each ``<entry>`` carries one
result contract inside its ``<content>`` element, and a feed-level
``<link rel="next-results" href="..."/>`` points at the next page when there
is one.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, List, Optional, Tuple, Type

from .models import (
    Contract,
    child_bool,
    child_datetime,
    child_int,
    append_child,
    child_text,
    find_child,
    find_children,
    local_name,
)


NEXT_RESULTS_REL = "next-results"


@dataclass
class Criteria:
    field: str
    value: str
    condition: str = "Equals"
    is_numeric: bool = False

    def to_element(self) -> ET.Element:
        root = ET.Element("Criteria")
        append_child(root, "Field", self.field)
        append_child(root, "Condition", self.condition)
        append_child(root, "ComparisonValue", self.value)
        append_child(root, "IsNumeric", self.is_numeric)
        return root

    @classmethod
    def from_element(cls, elem: ET.Element) -> "Criteria":
        return cls(
            field=child_text(elem, "Field") or "",
            value=child_text(elem, "ComparisonValue") or "",
            condition=child_text(elem, "Condition") or "Equals",
            is_numeric=bool(child_bool(elem, "IsNumeric")),
        )


@dataclass
class SearchCriteria:
    """A group of criteria joined by ``combinator``."""

    criteria: List[Criteria] = field(default_factory=list)
    combinator: str = "And"

    def to_element(self) -> ET.Element:
        root = ET.Element("SearchCriteria")
        append_child(root, "Combinator", self.combinator)
        container = ET.SubElement(root, "Criteria")
        for item in self.criteria:
            container.append(item.to_element())
        return root

    @classmethod
    def from_element(cls, elem: ET.Element) -> "SearchCriteria":
        container = find_child(elem, "Criteria")
        items = find_children(container, "Criteria") if container is not None else []
        return cls(
            criteria=[Criteria.from_element(c) for c in items],
            combinator=child_text(elem, "Combinator") or "And",
        )


@dataclass
class SearchOptions:
    max_page_size: Optional[int] = None
    results_per_page: Optional[int] = None
    order_by: Optional[str] = None
    is_mapping_search: bool = False

    def to_element(self) -> ET.Element:
        root = ET.Element("SearchOptions")
        append_child(root, "MaxPageSize", self.max_page_size)
        append_child(root, "ResultsPerPage", self.results_per_page)
        append_child(root, "OrderBy", self.order_by)
        append_child(root, "IsMappingSearch", self.is_mapping_search)
        return root

    @classmethod
    def from_element(cls, elem: ET.Element) -> "SearchOptions":
        return cls(
            max_page_size=child_int(elem, "MaxPageSize"),
            results_per_page=child_int(elem, "ResultsPerPage"),
            order_by=child_text(elem, "OrderBy"),
            is_mapping_search=bool(child_bool(elem, "IsMappingSearch")),
        )


@dataclass
class Search(Contract):
    """Search request posted to an entity's search endpoint.

    Criteria groups in ``search_fields`` are joined by ``combinator``.
    """

    search_fields: List[SearchCriteria] = field(default_factory=list)
    combinator: str = "Or"
    search_options: SearchOptions = field(default_factory=SearchOptions)
    as_of: Optional[datetime] = None

    element_name: ClassVar[str] = "Search"

    @classmethod
    def for_field(
        cls,
        field_name: str,
        value: str,
        condition: str = "Equals",
        **options: Any,
    ) -> "Search":
        """Single-criterion search, the common case."""
        return cls(
            search_fields=[
                SearchCriteria(
                    criteria=[Criteria(field=field_name, value=value, condition=condition)]
                )
            ],
            search_options=SearchOptions(**options),
        )

    def to_element(self) -> ET.Element:
        root = ET.Element(self.element_name)
        fields = ET.SubElement(root, "SearchFields")
        append_child(fields, "Combinator", self.combinator)
        criteria = ET.SubElement(fields, "Criterias")
        for group in self.search_fields:
            criteria.append(group.to_element())
        root.append(self.search_options.to_element())
        append_child(root, "AsOf", self.as_of)
        return root

    @classmethod
    def from_element(cls, elem: ET.Element) -> "Search":
        groups: List[SearchCriteria] = []
        combinator = "Or"
        fields = find_child(elem, "SearchFields")
        if fields is not None:
            combinator = child_text(fields, "Combinator") or "Or"
            container = find_child(fields, "Criterias")
            if container is not None:
                groups = [
                    SearchCriteria.from_element(g)
                    for g in find_children(container, "SearchCriteria")
                ]

        options_elem = find_child(elem, "SearchOptions")
        return cls(
            search_fields=groups,
            combinator=combinator,
            search_options=SearchOptions.from_element(options_elem)
            if options_elem is not None
            else SearchOptions(),
            as_of=child_datetime(elem, "AsOf"),
        )


def read_feed(data: bytes | str, message_type: Type[Contract]) -> Tuple[List[Any], Optional[str]]:
    """Decode an Atom feed of search results.

    Returns the entries deserialized as ``message_type`` (in feed order) and
    the ``next-results`` link, or None when this is the last page.
    """
    root = ET.fromstring(data)
    if local_name(root.tag) != "feed":
        raise ValueError(
            f"Search response is not an Atom feed (root element <{local_name(root.tag)}>)."
        )

    items: List[Any] = []
    for entry in find_children(root, "entry"):
        content = find_child(entry, "content")
        payload = next(iter(content), None) if content is not None else None
        if payload is None:
            raise ValueError("Feed entry has no XML content.")
        items.append(message_type.from_element(payload))

    next_page: Optional[str] = None
    for link in find_children(root, "link"):
        if link.get("rel") == NEXT_RESULTS_REL:
            next_page = link.get("href")
            break

    return items, next_page
