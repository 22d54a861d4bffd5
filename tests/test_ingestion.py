from datetime import date
from decimal import Decimal

import pytest
from conftest import invoice_record

from receivables.errors import ParseFailure, UnsupportedFormat
from receivables.models.relations import LinkState
from receivables.models.reports import CustomerStatus
from receivables.services.ingestion import ingest_deposit_file, ingest_invoice_file, register_buyers
from receivables.services.linkage import link_deposit_and_propagate
from receivables.services.settlement import settle_store

TODAY = date(2024, 3, 31)

INVOICES = """승인번호,발급일자,공급받는자사업자등록번호,상호,대표자명,주소,상호,대표자명,주소,합계금액
A-1,2024-01-05,111-11-11111,Supplier Inc,Kim,Seoul,Acme Corp,Lee,Busan,"1,000"
A-2,2024-02-05,111-11-11111,Supplier Inc,Kim,Seoul,Acme Corp,Lee,Busan,"2,000"
"""

DEPOSITS = """거래일자,거래시간,입금(원),출금(원),내용
2024-02-10,09:00:00,"1,500",0,Acme Corp
2024-02-11,09:00:00,"500",0,ACME PAY
2024-03-01,09:00:00,"700",0,ACME PAY
"""


def test_invoice_upload_registers_buyers_and_links_invoices(store):
    report = ingest_invoice_file(store, INVOICES.encode("utf-8"), "invoices.csv", TODAY)

    assert report.invoices.saved == 2
    assert report.invoices.total == 2
    assert report.customers.new == 1

    [customer] = store.list_customers()
    assert customer.company_name == "Acme Corp"
    assert customer.business_number == "111-11-11111"
    assert customer.representative_name == "Lee"
    assert customer.aliases == ["Lee"]

    relations = store.list_invoice_relations()
    assert [r.customer_id for r in relations] == [customer.id, customer.id]


def test_reupload_is_skipped_not_duplicated(store):
    ingest_invoice_file(store, INVOICES.encode("utf-8"), "invoices.csv", TODAY)
    ingest_deposit_file(store, DEPOSITS.encode("utf-8"), "bank.csv", TODAY)

    invoice_report = ingest_invoice_file(store, INVOICES.encode("utf-8"), "invoices.csv", TODAY)
    deposit_report = ingest_deposit_file(store, DEPOSITS.encode("utf-8"), "bank.csv", TODAY)

    assert invoice_report.invoices.saved == 0
    assert invoice_report.invoices.skipped == invoice_report.invoices.total == 2
    assert invoice_report.customers.new == 0
    assert invoice_report.customers.updated == 0

    assert deposit_report.saved == 0
    assert deposit_report.skipped == deposit_report.total == 3

    assert len(store.list_invoices()) == 2
    assert len(store.list_deposits()) == 3
    assert len(store.list_deposit_relations()) == 3


def test_unresolved_payer_gets_a_relation_without_customer(store):
    ingest_invoice_file(store, INVOICES.encode("utf-8"), "invoices.csv", TODAY)
    report = ingest_deposit_file(store, DEPOSITS.encode("utf-8"), "bank.csv", TODAY)

    assert report.saved == 3
    deposits = store.list_deposits()
    states = [store.get_deposit_link(d.id).state for d in deposits]
    assert states == [LinkState.LINKED, LinkState.UNRESOLVED, LinkState.UNRESOLVED]


def test_manual_link_settles_the_customer(store):
    ingest_invoice_file(store, INVOICES.encode("utf-8"), "invoices.csv", TODAY)
    ingest_deposit_file(store, DEPOSITS.encode("utf-8"), "bank.csv", TODAY)

    [acme] = store.list_customers()
    balances, _ = settle_store(store, as_of=TODAY)
    assert balances[0].balance == Decimal("-1500")
    assert balances[0].oldest_unpaid_date == date(2024, 2, 5)

    unresolved = [d for d in store.list_deposits() if d.deposit_name == "ACME PAY"]
    report = link_deposit_and_propagate(store, unresolved[0].id, acme.id)
    assert report.propagated == 1

    balances, _ = settle_store(store, as_of=TODAY)
    assert balances[0].balance == Decimal("-300")
    assert balances[0].status is CustomerStatus.UNPAID

    # the alias learned from the link resolves the next upload automatically
    more = "거래일자,거래시간,입금(원),내용\n2024-03-15,10:00:00,300,ACME PAY\n"
    ingest_deposit_file(store, more.encode("utf-8"), "bank-march.csv", TODAY)

    balances, _ = settle_store(store, as_of=TODAY)
    assert balances[0].status is CustomerStatus.COMPLETE


def test_register_buyers_updates_known_customers(store):
    store.insert_customer({
        "company_name": "Acme",
        "business_number": "111",
        "representative_name": "Lee",
        "address": "Busan",
        "aliases": ["Lee"],
    })
    records = [
        invoice_record("X-1", 10, buyer="Acme Corp", business_number="111"),
        invoice_record("X-2", 10, buyer="Acme Corp", business_number="111"),
        invoice_record("X-3", 10, buyer="Nameless"),
    ]
    records[0].buyer_representative = "Park"

    report = register_buyers(store, records)

    assert (report.new, report.updated, report.total) == (0, 1, 1)
    [customer] = store.list_customers()
    assert customer.company_name == "Acme Corp"
    assert customer.address is None
    assert customer.representative_name == "Park"
    assert customer.aliases == ["Park", "Lee"]


def test_fatal_file_errors_write_nothing(store):
    with pytest.raises(UnsupportedFormat):
        ingest_deposit_file(store, b"data", "bank.pdf", TODAY)
    with pytest.raises(ParseFailure):
        ingest_invoice_file(store, b"garbage", "invoices.xlsx", TODAY)

    assert store.list_deposits() == []
    assert store.list_invoices() == []
