# SPDX-License-Identifier: AGPL-3.0-or-later
from pathlib import Path

from glance.analyzers.inca import is_inca_document, split_tag
from glance.analyzers.markup import MarkupAnalyzer, scan_markup
from glance.models import AnalysisContext
from glance.settings import SummarySettings

INCA_DOCUMENT = """<?xml version="1.0" encoding="utf-8"?>
<incaDocument xmlns="http://schemas.itello.se/Inca/printDocument"
              xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"
              xmlns:dm="http://schemas.itello.se/Inca/datamodel"
              printDocumentId="42" incaVersion="7.1">
  <addressee personId="p1">
    <firstName>Anna</firstName>
    <name>Berg</name>
    <address><row1>Main Street 1</row1><city>Lund</city></address>
  </addressee>
  <administratingCompany administratingCompanyId="AC1">
    <administratingCompanyName>Acme Life</administratingCompanyName>
  </administratingCompany>
  <insurance contractId="c1">
    <contractStatus>Active</contractStatus>
    <contractRole contractRoleFrom="2020-01-01">
      <role>Owner</role>
      <person personId="p1"/>
    </contractRole>
    <benefit contractId="b1">
      <contractStatus>Active</contractStatus>
      <benefitType>Pension</benefitType>
      <benefitAmount>
        <benefitAmountPaymentFromDate>2030-01-01</benefitAmountPaymentFromDate>
      </benefitAmount>
    </benefit>
  </insurance>
  <dm:valueReserve valueReserveId="r1">
    <dm:reserveTotalAmount>1000</dm:reserveTotalAmount>
  </dm:valueReserve>
  <person personId="p1"><name>Berg</name></person>
</incaDocument>
"""


def _summarize(path: Path, settings: SummarySettings, token):
    return MarkupAnalyzer().summarize(AnalysisContext.from_path(path, settings), token)


def test_split_tag() -> None:
    assert split_tag("{urn:x}item") == ("urn:x", "item")
    assert split_tag("item") == ("", "item")


def test_generic_xml_scan(tmp_path: Path, settings, token) -> None:
    target = tmp_path / "data.xml"
    target.write_text("<root><item a='1'>hello</item><item a='2'/><other/></root>", encoding="utf-8")

    result = _summarize(target, settings, token)

    assert result.title == "XML Summary"
    assert result.status == "ok"
    assert "Root element: root" in result.body
    assert "Elements scanned: 4" in result.body
    assert "Attributes scanned: 2" in result.body
    assert "  item: 2" in result.body
    assert "Text samples:\n- hello" in result.body
    assert result.tables[0].rows == (("root", "1"), ("item", "2"), ("other", "1"))


def test_scan_stops_early(tmp_path: Path, token) -> None:
    target = tmp_path / "many.xml"
    target.write_text("<root>" + "<row/>" * 100 + "</root>", encoding="utf-8")
    limits = SummarySettings.from_flat({"markup.maxElements": 10}).markup

    scan = scan_markup(target, limits, token)

    assert scan.elements == 10
    assert scan.stopped_early is True


def test_parse_error_is_reported(tmp_path: Path, settings, token) -> None:
    partial = tmp_path / "partial.xml"
    partial.write_text("<root><a></root>", encoding="utf-8")
    broken = tmp_path / "broken.xml"
    broken.write_text("not xml at all", encoding="utf-8")

    partial_result = _summarize(partial, settings, token)
    broken_result = _summarize(broken, settings, token)

    assert "XML parsing error:" in partial_result.body
    assert partial_result.status == "ok"
    assert "XML parsing error:" in broken_result.body
    assert broken_result.status == "error"


def test_inca_detection(tmp_path: Path) -> None:
    inca = tmp_path / "letter.xml"
    inca.write_text(INCA_DOCUMENT, encoding="utf-8")
    plain = tmp_path / "plain.xml"
    plain.write_text("<incaDocument/>", encoding="utf-8")

    assert is_inca_document(inca)
    assert not is_inca_document(plain)
    assert not is_inca_document(tmp_path / "missing.xml")


def test_inca_summary(tmp_path: Path, settings, token) -> None:
    target = tmp_path / "letter.xml"
    target.write_text(INCA_DOCUMENT, encoding="utf-8")

    result = _summarize(target, settings, token)

    assert result.title == "XML Summary"
    assert result.body.startswith("Document: incaDocument (http://schemas.itello.se/Inca/printDocument)")
    assert "printDocumentId: 42" in result.body
    assert "  Name: Anna Berg" in result.body
    assert "  Address: Main Street 1, Lund" in result.body
    assert "  id=AC1 | Name: Acme Life" in result.body
    assert "Insurance #1 (contractId=c1, status: Active)" in result.body
    assert "Value Reserves (showing 1)" in result.body
    assert "  id=r1 | amount: 1000" in result.body
    assert "Persons (1)" in result.body
    titles = [table.title for table in result.tables]
    assert titles == ["Insurance #1 Roles", "Benefits", "Payments"]
    assert result.tables[0].rows == (("Owner", "p1", "2020-01-01", ""),)
    assert result.tables[1].rows[0][:3] == ("b1", "Active", "Pension")
