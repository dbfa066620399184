# SPDX-License-Identifier: AGPL-3.0-or-later
"""Domain summary for INCA insurance print documents (``incaDocument`` roots)."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from ..cancellation import CancellationToken
from ..models import TableSummary
from ..textutil import TextTableBuilder, format_count, indent_block


XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
DATAMODEL_NS = "http://schemas.itello.se/Inca/datamodel"
_INCA_MARKER = "schemas.itello.se/inca"
_MAX_BENEFITS = 6
_MAX_PERSONS = 6
_MAX_RESERVES = 5


def split_tag(tag: str) -> Tuple[str, str]:
    """Return ``(namespace, local_name)`` for an ElementTree tag."""

    if tag.startswith("{"):
        namespace, _, local = tag[1:].partition("}")
        return namespace, local
    return "", tag


def is_inca_document(path: str | Path) -> bool:
    """Check the root element only; any parse failure means "not INCA"."""

    try:
        with open(path, "rb") as handle:
            for _, element in ET.iterparse(handle, events=("start",)):
                namespace, local = split_tag(element.tag)
                return local.lower() == "incadocument" and _INCA_MARKER in namespace.lower()
    except (ET.ParseError, OSError):
        return False
    return False


class _Doc:
    """Namespace-aware lookups over the parsed tree."""

    def __init__(self, namespace: str) -> None:
        self.ns = namespace

    def q(self, name: str) -> str:
        return f"{{{self.ns}}}{name}" if self.ns else name

    def child(self, element: Optional[ET.Element], name: str) -> Optional[ET.Element]:
        if element is None:
            return None
        return element.find(self.q(name))

    def children(self, element: ET.Element, name: str) -> List[ET.Element]:
        return element.findall(self.q(name))

    def text(self, element: Optional[ET.Element], name: str) -> Optional[str]:
        return _value(self.child(element, name))

    def attr(self, element: Optional[ET.Element], name: str, attribute: str) -> Optional[str]:
        found = self.child(element, name)
        return found.get(attribute) if found is not None else None


def _value(element: Optional[ET.Element]) -> Optional[str]:
    if element is None:
        return None
    return "".join(element.itertext())


def _part(parts: List[str], label: str, value: Optional[str]) -> None:
    if value is not None and value.strip():
        parts.append(f"{label}: {value}")


def _or_empty(value: Optional[str]) -> str:
    return value if value is not None else ""


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value is not None:
            return value
    return None


class IncaSummary:
    """Accumulates body lines and sub-tables while walking the document."""

    def __init__(self, root: ET.Element, token: CancellationToken) -> None:
        namespace, _ = split_tag(root.tag)
        self.root = root
        self.doc = _Doc(namespace)
        self.token = token
        self.lines: List[str] = []
        self.tables: List[TableSummary] = []

    def build(self) -> Tuple[str, List[TableSummary]]:
        doc, root = self.doc, self.root
        self._header()
        self.lines.append("")

        addressee = doc.child(root, "addressee")
        if addressee is not None:
            self._addressee(addressee)
            self.lines.append("")

        companies = doc.children(root, "administratingCompany")
        if companies:
            self.token.raise_if_cancelled()
            self._companies(companies)
            self.lines.append("")

        for index, insurance in enumerate(doc.children(root, "insurance"), start=1):
            self.token.raise_if_cancelled()
            self._insurance(insurance, index)
            self.lines.append("")

        benefits = doc.children(root, "benefit")
        if benefits:
            self.token.raise_if_cancelled()
            self._benefits(benefits, "")
            self.lines.append("")

        reserves = []
        for element in root.iter(f"{{{DATAMODEL_NS}}}valueReserve"):
            reserves.append(element)
            if len(reserves) >= _MAX_RESERVES:
                break
        if reserves:
            self.token.raise_if_cancelled()
            self._reserves(reserves)
            self.lines.append("")

        persons = doc.children(root, "person")
        if persons:
            self.token.raise_if_cancelled()
            self._persons(persons)

        return "\n".join(self.lines).rstrip(), self.tables

    def _table(self, title: str, builder: TextTableBuilder, headers: Sequence[str], rows: List[List[str]], prefix: str) -> None:
        self.lines.extend(indent_block(builder.build(), prefix))
        self.tables.append(TableSummary(title=title, headers=headers, rows=rows))

    def _header(self) -> None:
        root = self.root
        parts: List[str] = []
        _part(parts, "type", root.get(f"{{{XSI_NS}}}type"))
        for name in ("printDocumentId", "incaVersion", "printDate", "userName"):
            _part(parts, name, root.get(name))
        _, local = split_tag(root.tag)
        self.lines.append(f"Document: {local} ({self.doc.ns})" if self.doc.ns else f"Document: {local}")
        if parts:
            self.lines.append("  " + " | ".join(parts))

    def _addressee(self, addressee: ET.Element) -> None:
        doc = self.doc
        kind = addressee.get(f"{{{XSI_NS}}}type") or split_tag(addressee.tag)[1]
        person_id = addressee.get("personId")
        suffix = f" (personId={person_id})" if person_id and person_id.strip() else ""
        self.lines.append(f"Addressee ({kind}{suffix})")

        names = [v for v in (doc.text(addressee, "firstName"), doc.text(addressee, "name")) if v and v.strip()]
        if names:
            self.lines.append(f"  Name: {' '.join(names)}")

        extras: List[str] = []
        _part(extras, "Language", doc.attr(addressee, "language", "language"))
        _part(extras, "Status", doc.text(addressee, "status"))
        if extras:
            self.lines.append("  " + " | ".join(extras))

        address = doc.child(addressee, "address")
        if address is not None:
            pieces = [
                doc.text(address, "addressRow1"),
                doc.text(address, "row1"),
                doc.text(address, "row2"),
                doc.text(address, "row3"),
                doc.text(address, "city"),
                doc.text(address, "postCode"),
                doc.attr(address, "country", "countryCode"),
            ]
            joined = ", ".join(p for p in pieces if p and p.strip())
            if joined:
                self.lines.append(f"  Address: {joined}")

    def _companies(self, companies: Sequence[ET.Element]) -> None:
        doc = self.doc
        self.lines.append(f"Administrating Company ({len(companies)})")
        for company in companies:
            parts = [f"id={company.get('administratingCompanyId') or '?'}"]
            _part(parts, "Name", doc.text(company, "administratingCompanyName"))
            _part(parts, "Country", doc.attr(company, "operationsCountry", "countryCode"))
            _part(parts, "LegalPerson", doc.attr(company, "legalPerson", "personId"))
            self.lines.append("  " + " | ".join(parts))

    def _insurance(self, insurance: ET.Element, index: int) -> None:
        doc = self.doc
        contract_id = insurance.get("contractId") or "?"
        header = [f"contractId={contract_id}"]
        _part(header, "status", doc.text(insurance, "contractStatus"))
        _part(header, "subtype", doc.text(insurance, "contractSubtype"))
        _part(header, "start", doc.text(insurance, "contractStartDate"))
        self.lines.append(f"Insurance #{index} ({', '.join(header)})")

        extras: List[str] = []
        _part(extras, "Currency", doc.attr(insurance, "contractCurrency", "currencyCode"))
        _part(extras, "Management", doc.text(insurance, "investmentManagementType"))
        if extras:
            self.lines.append("  " + " | ".join(extras))

        product = doc.child(insurance, "product")
        if product is not None:
            product_parts: List[str] = []
            _part(
                product_parts,
                "Name",
                _first(doc.text(product, "variantName"), doc.text(product, "variantDescription")),
            )
            _part(product_parts, "Short", doc.text(product, "variantShortName"))
            _part(product_parts, "VariantId", product.get("variantId"))
            if product_parts:
                self.lines.append("  Product: " + " | ".join(product_parts))

        roles = doc.children(insurance, "contractRole")
        if roles:
            self.lines.append("  Roles:")
            headers = ["Role", "PersonId", "From", "To"]
            builder = TextTableBuilder(headers)
            rows: List[List[str]] = []
            for role in roles:
                row = [
                    _first(doc.text(role, "role"), "(unknown role)") or "",
                    _or_empty(doc.attr(role, "person", "personId")),
                    _or_empty(role.get("contractRoleFrom")),
                    _or_empty(role.get("contractRoleTo")),
                ]
                builder.add_row(row)
                rows.append(row)
            self._table(f"Insurance #{index} Roles", builder, headers, rows, "  ")

        benefits = doc.children(insurance, "benefit")
        if benefits:
            self._benefits(benefits, "  ")

    def _benefits(self, benefits: Sequence[ET.Element], prefix: str) -> None:
        doc = self.doc
        self.lines.append(f"{prefix}Benefits ({len(benefits)})")
        primary_headers = ["ContractId", "Status", "Type", "Start", "Fee"]
        payment_headers = ["ContractId", "Frequency", "From", "To", "Months", "%", "Receiver", "Type", "End"]
        beneficiary_headers = ["ContractId", "Beneficiary", "From", "To", "Flags"]
        compensation_headers = ["ContractId", "From", "To", "Details"]
        primary: List[List[str]] = []
        payments: List[List[str]] = []
        beneficiaries: List[List[str]] = []
        compensation: List[List[str]] = []

        for benefit in benefits[:_MAX_BENEFITS]:
            self.token.raise_if_cancelled()
            contract_id = _or_empty(benefit.get("contractId"))
            primary.append(
                [
                    contract_id,
                    _or_empty(doc.text(benefit, "contractStatus")),
                    _or_empty(doc.text(benefit, "benefitType")),
                    _or_empty(doc.text(benefit, "contractStartDate")),
                    _or_empty(doc.text(benefit, "feeTechnique")),
                ]
            )

            beneficiary = doc.child(benefit, "beneficiary")
            if beneficiary is not None:
                identifier = doc.text(beneficiary, "beneficiary")
                start = beneficiary.get("beneficiaryFrom")
                end = beneficiary.get("beneficiaryTo")
                flags = [
                    f"{name}={value}"
                    for name, value in (
                        ("cancelable", doc.text(beneficiary, "cancelable")),
                        ("disposition", doc.text(beneficiary, "disposition")),
                        ("privateProperty", doc.text(beneficiary, "privateProperty")),
                    )
                    if value and value.strip()
                ]
                if any(v and v.strip() for v in (identifier, start, end)) or flags:
                    beneficiaries.append(
                        [contract_id, _or_empty(identifier), _or_empty(start), _or_empty(end), ", ".join(flags)]
                    )

            payment = doc.child(benefit, "benefitAmount")
            if payment is not None:
                payments.append(
                    [
                        contract_id,
                        _or_empty(
                            _first(doc.text(benefit, "outPaymentFrequency"), doc.text(payment, "outPaymentFrequency"))
                        ),
                        _or_empty(doc.text(payment, "benefitAmountPaymentFromDate")),
                        _or_empty(doc.text(payment, "benefitAmountPaymentToDate")),
                        _or_empty(doc.text(payment, "benefitAmountPaymentTimeInMonths")),
                        _or_empty(doc.text(payment, "benefitAmountPercentage")),
                        _or_empty(doc.text(payment, "benefitAmountPaymentReceiver")),
                        _or_empty(doc.text(payment, "benefitAmountPaymentType")),
                        _or_empty(doc.text(payment, "benefitEndDate")),
                    ]
                )

            allocation = doc.child(benefit, "contractCompensationAllocation")
            if allocation is not None:
                details = [
                    f"{doc.text(detail, 'contractCompensationAllocationPercentage') or '?'}"
                    f"→{doc.attr(detail, 'person', 'personId') or '?'}"
                    for detail in doc.children(allocation, "contractCompensationAllocationDetail")
                ]
                compensation.append(
                    [
                        contract_id,
                        _or_empty(allocation.get("contractCompensationAllocationFrom")),
                        _or_empty(allocation.get("contractCompensationAllocationTo")),
                        ", ".join(details),
                    ]
                )

        inner = prefix + "  "
        self._emit("Benefits", primary_headers, primary, inner, label=None)
        self._emit("Beneficiaries", beneficiary_headers, beneficiaries, inner, label="Beneficiaries:")
        self._emit("Payments", payment_headers, payments, inner, label="Payments:")
        self._emit("Compensation", compensation_headers, compensation, inner, label="Compensation:")

        if len(benefits) > _MAX_BENEFITS:
            self.lines.append(f"{inner}... {format_count(len(benefits) - _MAX_BENEFITS)} more benefit node(s)")

    def _emit(
        self,
        title: str,
        headers: Sequence[str],
        rows: List[List[str]],
        prefix: str,
        label: Optional[str],
    ) -> None:
        if not rows:
            return
        if label:
            self.lines.append(prefix + label)
        builder = TextTableBuilder(headers)
        for row in rows:
            builder.add_row(row)
        self._table(title, builder, headers, rows, prefix)

    def _reserves(self, reserves: Iterable[ET.Element]) -> None:
        reserves = list(reserves)
        data = _Doc(DATAMODEL_NS)
        self.lines.append(f"Value Reserves (showing {len(reserves)})")
        for reserve in reserves:
            parts = [f"id={reserve.get('valueReserveId') or '?'}"]
            _part(parts, "amount", data.text(reserve, "reserveTotalAmount"))
            _part(parts, "calculatedTo", data.text(reserve, "reserveCalculatedToDate"))
            _part(parts, "subtype", data.text(reserve, "valueReserveSubtype"))
            self.lines.append("  " + " | ".join(parts))

    def _persons(self, persons: Sequence[ET.Element]) -> None:
        doc = self.doc
        self.lines.append(f"Persons ({len(persons)})")
        for person in persons[:_MAX_PERSONS]:
            parts = [f"id={person.get('personId') or '?'}"]
            _part(parts, "type", person.get(f"{{{XSI_NS}}}type") or split_tag(person.tag)[1])
            _part(parts, "name", _first(doc.text(person, "name"), doc.text(person, "firstName")))
            _part(parts, "status", doc.text(person, "status"))
            _part(parts, "DOB", doc.text(person, "dateOfBirth"))
            _part(parts, "DOD", doc.text(person, "dateOfDeath"))
            self.lines.append("  " + " | ".join(parts))
        if len(persons) > _MAX_PERSONS:
            self.lines.append(f"  ... {format_count(len(persons) - _MAX_PERSONS)} more person node(s)")


def summarize_inca(path: str | Path, token: CancellationToken) -> Tuple[str, List[TableSummary]]:
    """Parse the whole document and return ``(body, tables)``.

    Raises :class:`xml.etree.ElementTree.ParseError` or :class:`OSError` on
    unreadable input; :class:`OperationCancelled` propagates unchanged.
    """

    tree = ET.parse(str(path))
    root = tree.getroot()
    if root is None:
        return "Empty INCA document.", []
    return IncaSummary(root, token).build()


__all__ = [
    "DATAMODEL_NS",
    "IncaSummary",
    "XSI_NS",
    "is_inca_document",
    "split_tag",
    "summarize_inca",
]
