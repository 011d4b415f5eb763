# MDM Client
# File: tests/test_models.py
# Version: v2

"""Tests for contract (de)serialization and the request-info header codec."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from mdm_client.models import (
    Fault,
    MappingResponse,
    MdmId,
    RequestInfo,
    SourceSystem,
    format_timestamp,
)
from mdm_client.response import Response, status_name
from mdm_client.search import read_feed


SOURCE_SYSTEM_DOC = b"""<?xml version="1.0" encoding="utf-8"?>
<SourceSystem xmlns="http://schemas.example.com/mdm/2012">
  <Identifiers>
    <MdmId>
      <SystemName>Nexus</SystemName>
      <Identifier>42</Identifier>
      <IsMdmId>true</IsMdmId>
    </MdmId>
    <MdmId>
      <SystemName>Trayport</SystemName>
      <Identifier>TP-42</Identifier>
      <IsMdmId>false</IsMdmId>
      <SourceSystemOriginated>true</SourceSystemOriginated>
      <StartDate>2023-01-01T00:00:00.0000000Z</StartDate>
      <MappingId>1001</MappingId>
    </MdmId>
  </Identifiers>
  <Details>
    <Name>Trayport</Name>
    <Parent>
      <MdmId><SystemName>Nexus</SystemName><Identifier>1</Identifier><IsMdmId>true</IsMdmId></MdmId>
    </Parent>
  </Details>
  <MdmSystemData>
    <StartDate>2023-01-01T00:00:00Z</StartDate>
    <Version>3</Version>
  </MdmSystemData>
</SourceSystem>
"""


def test_source_system_from_namespaced_document() -> None:
    entity = SourceSystem.from_xml(SOURCE_SYSTEM_DOC)

    assert entity.name == "Trayport"
    assert entity.mdm_key() == 42
    assert entity.parent.identifier == "1"
    assert entity.system_data.version == 3
    assert entity.system_data.start_date == datetime(2023, 1, 1, tzinfo=timezone.utc)

    trayport = entity.identifiers[1]
    assert trayport.system_name == "Trayport"
    assert trayport.is_mdm_id is False
    assert trayport.source_system_originated is True
    assert trayport.mapping_id == 1001
    assert trayport.default_reverse_ind is None


def test_source_system_survives_serialization() -> None:
    entity = SourceSystem.from_xml(SOURCE_SYSTEM_DOC)

    assert SourceSystem.from_xml(entity.to_xml()) == entity


def test_from_xml_rejects_other_documents() -> None:
    with pytest.raises(ValueError):
        SourceSystem.from_xml(b"<Person/>")


def test_mdm_key_requires_numeric_mdm_id() -> None:
    assert SourceSystem().mdm_key() is None
    assert SourceSystem(identifiers=[MdmId(system_name="Endur", identifier="9")]).mdm_key() is None
    assert SourceSystem(identifiers=[MdmId(identifier="x", is_mdm_id=True)]).mdm_key() is None


def test_request_info_header_round_trip() -> None:
    info = RequestInfo(request_id="3f1c", source_system="Endur")

    decoded = RequestInfo.decode(info.encode())

    assert decoded.request_id == "3f1c"
    assert decoded.source_system == "Endur"


def test_request_info_populated_fills_blanks_only() -> None:
    generated = RequestInfo().populated("Endur")
    assert generated.request_id
    assert generated.source_system == "Endur"

    kept = RequestInfo(request_id="abc", source_system="Trayport").populated("Endur")
    assert kept == RequestInfo(request_id="abc", source_system="Trayport")

    assert RequestInfo().populated(None).request_id != RequestInfo().populated(None).request_id


def test_fault_parsing() -> None:
    fault = Fault.from_xml(b"<Fault><Message>Bad</Message><Reason>Because</Reason></Fault>")
    assert fault == Fault(message="Bad", reason="Because")

    with pytest.raises(ValueError):
        Fault.from_xml(b"<Fault><Reason>no message</Reason></Fault>")


def test_mapping_response_without_mappings() -> None:
    assert MappingResponse.from_xml(b"<MappingResponse/>").mappings == []


def test_format_timestamp_uses_utc_and_seven_digits() -> None:
    plus_two = timezone(timedelta(hours=2))
    assert format_timestamp(datetime(2024, 6, 1, 14, 30, tzinfo=plus_two)) == "2024-06-01T12:30:00.0000000Z"
    assert format_timestamp(datetime(2024, 6, 1, 0, 0, 0, 5)) == "2024-06-01T00:00:00.0000050Z"


def test_read_feed_requires_content() -> None:
    feed = b'<feed xmlns="http://www.w3.org/2005/Atom"><entry><id>1</id></entry></feed>'
    with pytest.raises(ValueError):
        read_feed(feed, SourceSystem)


def test_status_name_matches_wire_names() -> None:
    assert status_name(404) == "NotFound"
    assert status_name(500) == "InternalServerError"
    assert status_name(299) == "299"


def test_failure_always_carries_fault() -> None:
    response = Response.failure(409, None)
    assert response.is_valid is False
    assert response.fault.message == "Conflict"
