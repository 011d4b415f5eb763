# MDM Client
# File: models.py
# Version: v3

"""Data contracts exchanged with the MDM service.

Contracts are plain dataclasses with explicit XML (de)serialization. Element
lookups compare local names only, so payloads written with or without a
namespace are both accepted.
"""

from __future__ import annotations

import base64
import typing
import uuid
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar


C = TypeVar("C", bound="Contract")


# ---------------------------------------------------------------------------
# XML helpers
# ---------------------------------------------------------------------------


def local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def find_child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    for child in elem:
        if local_name(child.tag) == name:
            return child
    return None


def find_children(elem: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in elem if local_name(child.tag) == name]


def child_text(elem: ET.Element, name: str) -> Optional[str]:
    child = find_child(elem, name)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def child_bool(elem: ET.Element, name: str) -> Optional[bool]:
    raw = child_text(elem, name)
    if raw is None or raw == "":
        return None
    return raw.lower() in {"true", "1"}


def child_int(elem: ET.Element, name: str) -> Optional[int]:
    raw = child_text(elem, name)
    if raw is None or raw == "":
        return None
    return int(raw)


def child_datetime(elem: ET.Element, name: str) -> Optional[datetime]:
    raw = child_text(elem, name)
    if not raw:
        return None
    return datetime.fromisoformat(raw)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp the way the service expects it.

    UTC, seven fractional digits, trailing ``Z``. Naive values are taken to
    be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    # Python only carries microseconds; the seventh digit is always zero.
    return value.strftime("%Y-%m-%dT%H:%M:%S.%f") + "0Z"


def append_child(parent: ET.Element, name: str, value: Any) -> None:
    """Append ``<name>value</name>`` unless value is None."""
    if value is None:
        return
    child = ET.SubElement(parent, name)
    if isinstance(value, bool):
        child.text = "true" if value else "false"
    elif isinstance(value, datetime):
        child.text = format_timestamp(value)
    else:
        child.text = str(value)


# ---------------------------------------------------------------------------
# Base contract
# ---------------------------------------------------------------------------


class Contract:
    """Base for contracts that travel as XML documents."""

    element_name: ClassVar[str] = ""

    def to_element(self) -> ET.Element:
        raise NotImplementedError

    @classmethod
    def from_element(cls: Type[C], elem: ET.Element) -> C:
        raise NotImplementedError

    def to_xml(self) -> bytes:
        return ET.tostring(self.to_element(), encoding="utf-8")

    @classmethod
    def from_xml(cls: Type[C], data: bytes | str) -> C:
        root = ET.fromstring(data)
        if local_name(root.tag) != cls.element_name:
            raise ValueError(
                f"Expected <{cls.element_name}> document, "
                f"got <{local_name(root.tag)}>."
            )
        return cls.from_element(root)


def decode_message(message_type: Any, data: bytes | str) -> Any:
    """Deserialize a response body into ``message_type``.

    ``message_type`` is either a Contract subclass or ``List[Contract]``; for
    lists the document element is a wrapper whose matching children are the
    items.
    """
    if typing.get_origin(message_type) in (list, List):
        (item_type,) = typing.get_args(message_type)
        root = ET.fromstring(data)
        return [
            item_type.from_element(child)
            for child in root
            if local_name(child.tag) == item_type.element_name
        ]
    return message_type.from_xml(data)


# ---------------------------------------------------------------------------
# Faults and request metadata
# ---------------------------------------------------------------------------


@dataclass
class Fault(Contract):
    """Error payload returned by the service, or synthesized by the client."""

    message: str
    reason: Optional[str] = None

    element_name: ClassVar[str] = "Fault"

    def to_element(self) -> ET.Element:
        root = ET.Element(self.element_name)
        append_child(root, "Message", self.message)
        append_child(root, "Reason", self.reason)
        return root

    @classmethod
    def from_element(cls, elem: ET.Element) -> "Fault":
        message = child_text(elem, "Message")
        if message is None:
            raise ValueError("Fault payload carries no <Message>.")
        return cls(message=message, reason=child_text(elem, "Reason"))


@dataclass
class RequestInfo(Contract):
    """Correlation data sent with every mutating call."""

    request_id: Optional[str] = None
    source_system: Optional[str] = None

    element_name: ClassVar[str] = "MdmRequestInfo"

    def populated(self, default_source_system: Optional[str]) -> "RequestInfo":
        """Return a copy with a request id and source system filled in."""
        request_id = self.request_id
        if not request_id or not request_id.strip():
            request_id = str(uuid.uuid4())

        source_system = self.source_system
        if not source_system or not source_system.strip():
            source_system = default_source_system

        return replace(self, request_id=request_id, source_system=source_system)

    def to_element(self) -> ET.Element:
        root = ET.Element(self.element_name)
        append_child(root, "RequestId", self.request_id)
        append_child(root, "SourceSystem", self.source_system)
        return root

    @classmethod
    def from_element(cls, elem: ET.Element) -> "RequestInfo":
        return cls(
            request_id=child_text(elem, "RequestId"),
            source_system=child_text(elem, "SourceSystem"),
        )

    def encode(self) -> str:
        """Header-safe representation (base64 of the XML document)."""
        return base64.b64encode(self.to_xml()).decode("ascii")

    @classmethod
    def decode(cls, value: str) -> "RequestInfo":
        return cls.from_xml(base64.b64decode(value.encode("ascii")))


# ---------------------------------------------------------------------------
# Identifiers and mappings
# ---------------------------------------------------------------------------


@dataclass
class MdmId(Contract):
    """An identifier for an entity in one particular system."""

    system_name: Optional[str] = None
    identifier: Optional[str] = None
    is_mdm_id: bool = False

    default_reverse_ind: Optional[bool] = None
    source_system_originated: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    # Server-side id of the mapping row; needed to delete the mapping.
    mapping_id: Optional[int] = None

    element_name: ClassVar[str] = "MdmId"

    def to_element(self) -> ET.Element:
        root = ET.Element(self.element_name)
        append_child(root, "SystemName", self.system_name)
        append_child(root, "Identifier", self.identifier)
        append_child(root, "IsMdmId", self.is_mdm_id)
        append_child(root, "DefaultReverseInd", self.default_reverse_ind)
        append_child(root, "SourceSystemOriginated", self.source_system_originated)
        append_child(root, "StartDate", self.start_date)
        append_child(root, "EndDate", self.end_date)
        append_child(root, "MappingId", self.mapping_id)
        return root

    @classmethod
    def from_element(cls, elem: ET.Element) -> "MdmId":
        return cls(
            system_name=child_text(elem, "SystemName"),
            identifier=child_text(elem, "Identifier"),
            is_mdm_id=bool(child_bool(elem, "IsMdmId")),
            default_reverse_ind=child_bool(elem, "DefaultReverseInd"),
            source_system_originated=child_bool(elem, "SourceSystemOriginated"),
            start_date=child_datetime(elem, "StartDate"),
            end_date=child_datetime(elem, "EndDate"),
            mapping_id=child_int(elem, "MappingId"),
        )

    def __str__(self) -> str:
        return f"{self.system_name}/{self.identifier}"


@dataclass
class Mapping(Contract):
    """Payload posted to an entity's mapping collection."""

    system_name: Optional[str] = None
    identifier: Optional[str] = None
    default_reverse_ind: Optional[bool] = None
    source_system_originated: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    element_name: ClassVar[str] = "Mapping"

    @classmethod
    def from_identifier(cls, identifier: MdmId) -> "Mapping":
        return cls(
            system_name=identifier.system_name,
            identifier=identifier.identifier,
            default_reverse_ind=identifier.default_reverse_ind,
            source_system_originated=identifier.source_system_originated,
            start_date=identifier.start_date,
            end_date=identifier.end_date,
        )

    def to_element(self) -> ET.Element:
        root = ET.Element(self.element_name)
        append_child(root, "SystemName", self.system_name)
        append_child(root, "Identifier", self.identifier)
        append_child(root, "DefaultReverseInd", self.default_reverse_ind)
        append_child(root, "SourceSystemOriginated", self.source_system_originated)
        append_child(root, "StartDate", self.start_date)
        append_child(root, "EndDate", self.end_date)
        return root

    @classmethod
    def from_element(cls, elem: ET.Element) -> "Mapping":
        return cls(
            system_name=child_text(elem, "SystemName"),
            identifier=child_text(elem, "Identifier"),
            default_reverse_ind=child_bool(elem, "DefaultReverseInd"),
            source_system_originated=child_bool(elem, "SourceSystemOriginated"),
            start_date=child_datetime(elem, "StartDate"),
            end_date=child_datetime(elem, "EndDate"),
        )


@dataclass
class MappingResponse(Contract):
    """Result of a mapping creation or a cross-map lookup."""

    mappings: List[MdmId] = field(default_factory=list)

    element_name: ClassVar[str] = "MappingResponse"

    def to_element(self) -> ET.Element:
        root = ET.Element(self.element_name)
        container = ET.SubElement(root, "Mappings")
        for mapping in self.mappings:
            container.append(mapping.to_element())
        return root

    @classmethod
    def from_element(cls, elem: ET.Element) -> "MappingResponse":
        container = find_child(elem, "Mappings")
        if container is None:
            return cls()
        return cls(
            mappings=[MdmId.from_element(m) for m in find_children(container, "MdmId")]
        )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


@dataclass
class SystemData:
    """Metadata the MDM service maintains on every entity."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    version: Optional[int] = None

    def to_element(self) -> ET.Element:
        root = ET.Element("MdmSystemData")
        append_child(root, "StartDate", self.start_date)
        append_child(root, "EndDate", self.end_date)
        append_child(root, "Version", self.version)
        return root

    @classmethod
    def from_element(cls, elem: ET.Element) -> "SystemData":
        return cls(
            start_date=child_datetime(elem, "StartDate"),
            end_date=child_datetime(elem, "EndDate"),
            version=child_int(elem, "Version"),
        )


@dataclass
class MdmEntity(Contract):
    """Base class for entity contracts.

    An entity document looks like::

        <SourceSystem>
          <Identifiers><MdmId>...</MdmId></Identifiers>
          <Details>...</Details>
          <MdmSystemData>...</MdmSystemData>
        </SourceSystem>

    Subclasses set ``element_name`` and map their own fields to and from
    ``<Details>``.
    """

    identifiers: List[MdmId] = field(default_factory=list)
    system_data: Optional[SystemData] = None

    def mdm_key(self) -> Optional[int]:
        """Integer id of this entity in the MDM system, if it has one."""
        for ident in self.identifiers:
            if not ident.is_mdm_id:
                continue
            try:
                return int(ident.identifier or "")
            except ValueError:
                return None
        return None

    def _details_to_element(self, details: ET.Element) -> None:
        pass

    @classmethod
    def _details_from_element(cls, details: ET.Element) -> Dict[str, Any]:
        return {}

    def to_element(self) -> ET.Element:
        root = ET.Element(self.element_name)
        identifiers = ET.SubElement(root, "Identifiers")
        for ident in self.identifiers:
            identifiers.append(ident.to_element())
        self._details_to_element(ET.SubElement(root, "Details"))
        if self.system_data is not None:
            root.append(self.system_data.to_element())
        return root

    @classmethod
    def from_element(cls, elem: ET.Element):
        identifiers_elem = find_child(elem, "Identifiers")
        identifiers = (
            [MdmId.from_element(i) for i in find_children(identifiers_elem, "MdmId")]
            if identifiers_elem is not None
            else []
        )

        system_elem = find_child(elem, "MdmSystemData")
        details_elem = find_child(elem, "Details")
        details = (
            cls._details_from_element(details_elem) if details_elem is not None else {}
        )

        return cls(
            identifiers=identifiers,
            system_data=SystemData.from_element(system_elem)
            if system_elem is not None
            else None,
            **details,
        )


@dataclass
class SourceSystem(MdmEntity):
    """A system that contributes identifiers to the MDM service."""

    name: Optional[str] = None
    parent: Optional[MdmId] = None

    element_name: ClassVar[str] = "SourceSystem"

    def _details_to_element(self, details: ET.Element) -> None:
        append_child(details, "Name", self.name)
        if self.parent is not None:
            ET.SubElement(details, "Parent").append(self.parent.to_element())

    @classmethod
    def _details_from_element(cls, details: ET.Element) -> Dict[str, Any]:
        parent = None
        parent_elem = find_child(details, "Parent")
        if parent_elem is not None:
            ident = find_child(parent_elem, "MdmId")
            if ident is not None:
                parent = MdmId.from_element(ident)
        return {"name": child_text(details, "Name"), "parent": parent}
