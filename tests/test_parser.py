"""
Parser tests: header discovery, column mapping for both export types,
money and date cells, and the fatal per-file errors.
"""

import io
from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest

from receivables.errors import ParseFailure, UnsupportedFormat
from receivables.ingest.parser import (
    DocumentKind,
    dedupe_headers,
    excel_serial_to_date,
    find_header_index,
    parse_amount,
    parse_date,
    parse_deposit_file,
    parse_file,
    parse_invoice_file,
)

TODAY = date(2024, 6, 30)

DEPOSIT_CSV = """계좌번호,110-123-456789
조회기간,2024-01-01 ~ 2024-01-31
거래일자,거래시간,적요,출금(원),입금(원),내용,잔액(원),거래점
2024-01-15,09:30:00,이체,0,"1,500,000",ACME,"2,000,000",본점
2024-01-16,10:00:00,이체,"300,000",0,렌트,"1,700,000",본점
2024/01/20,11:00:00,이체,0,"250,000",Beta Co,"1,950,000",
"""

INVOICE_CSV = """전자세금계산서 목록
승인번호,발급일자,공급자사업자등록번호,상호,대표자명,주소,공급받는자사업자등록번호,상호,대표자명,주소,공급받는자 이메일1,합계금액,공급가액,세액,영수/청구 구분,품목명
20240105-1,2024-01-05,111-11-11111,Supplier Inc,Kim,Seoul,222-22-22222,Acme,Lee,Busan,acme@example.com,"1,100,000","1,000,000","100,000",청구,Consulting
승인번호,발급일자,공급자사업자등록번호,상호,대표자명,주소,공급받는자사업자등록번호,상호,대표자명,주소,공급받는자 이메일1,합계금액,공급가액,세액,영수/청구 구분,품목명
20240106-2,2024-01-06,111-11-11111,Supplier Inc,Kim,Seoul,333-33-33333,Beta,Park,Incheon,,"550,000","500,000","50,000",영수,Support
,,,,,,,,,,,,,,,
"""


def _xlsx(rows):
    buf = io.BytesIO()
    pd.DataFrame(rows).to_excel(buf, header=False, index=False)
    return buf.getvalue()


# ---- Deposits ----

def test_deposit_csv_skips_preamble_and_withdrawals():
    records = parse_deposit_file(DEPOSIT_CSV.encode("utf-8"), "bank.csv", TODAY)

    assert [r.deposit_name for r in records] == ["ACME", "Beta Co"]

    acme = records[0]
    assert acme.transaction_date == date(2024, 1, 15)
    assert acme.transaction_time == "09:30:00"
    assert acme.deposit_amount == Decimal("1500000")
    assert acme.balance == Decimal("2000000")
    assert acme.branch_name == "본점"

    beta = records[1]
    assert beta.transaction_date == date(2024, 1, 20)
    assert beta.branch_name is None


def test_deposit_csv_in_cp949():
    records = parse_deposit_file(DEPOSIT_CSV.encode("cp949"), "bank.csv", TODAY)
    assert len(records) == 2


def test_deposit_csv_with_english_headers():
    content = (
        "Transaction Date,Transaction Time,Deposit,Withdrawal,Depositor\n"
        "2024-02-01,08:00:00,1000,0,Gamma\n"
    ).encode("utf-8")
    records = parse_deposit_file(content, "export.CSV", TODAY)

    assert len(records) == 1
    assert records[0].deposit_name == "Gamma"
    assert records[0].deposit_amount == Decimal("1000")


def test_deposit_xlsx_with_serial_dates():
    content = _xlsx([
        ["Account", "110-123", None, None, None],
        ["거래일자", "거래시간", "입금(원)", "출금(원)", "내용"],
        [45306, "09:00:00", 1500000, 0, "ACME"],
        ["2024-01-16", "10:00:00", 0, 30000, "rent"],
        ["2024-01-17", None, 2000, 0, None],
    ])
    records = parse_deposit_file(content, "bank.xlsx", TODAY)

    assert len(records) == 2
    assert records[0].transaction_date == date(2024, 1, 15)
    assert records[0].deposit_amount == Decimal("1500000")
    assert records[1].deposit_name == ""
    assert records[1].transaction_time == ""


# ---- Invoices ----

def test_invoice_csv_reads_buyer_from_second_party_columns():
    records = parse_invoice_file(INVOICE_CSV.encode("utf-8"), "invoices.csv", TODAY)

    assert [r.approval_number for r in records] == ["20240105-1", "20240106-2"]

    first = records[0]
    assert first.issue_date == date(2024, 1, 5)
    assert first.supplier_company_name == "Supplier Inc"
    assert first.buyer_company_name == "Acme"
    assert first.buyer_representative == "Lee"
    assert first.buyer_address == "Busan"
    assert first.buyer_business_number == "222-22-22222"
    assert first.buyer_email == "acme@example.com"
    assert first.total_amount == Decimal("1100000")
    assert first.supply_amount == Decimal("1000000")
    assert first.tax_amount == Decimal("100000")
    assert first.transaction_type == "BILL"

    assert records[1].transaction_type == "RECEIPT"
    assert records[1].buyer_email is None


def test_invoice_xlsx_with_duplicate_titles():
    content = _xlsx([
        ["홈택스 매출 내역", None, None, None, None],
        ["승인번호", "발급일자", "상호", "상호", "합계금액"],
        ["A-1", "2024.03.02", "Supplier Inc", "Delta", 33000],
    ])
    records = parse_invoice_file(content, "invoices.xlsx", TODAY)

    assert len(records) == 1
    assert records[0].buyer_company_name == "Delta"
    assert records[0].issue_date == date(2024, 3, 2)
    assert records[0].total_amount == Decimal("33000")


def test_invoice_with_negative_total_is_dropped():
    content = (
        "승인번호,발급일자,합계금액\n"
        "N-1,2024-01-01,-5000\n"
        "N-2,2024-01-01,5000\n"
    ).encode("utf-8")
    records = parse_invoice_file(content, "invoices.csv", TODAY)
    assert [r.approval_number for r in records] == ["N-2"]


def test_single_party_columns_fall_back_to_first_occurrence():
    content = "ApprovalNumber,IssueDate,CompanyName,TotalAmount\nX-1,2024-05-01,Omega,100\n".encode("utf-8")
    records = parse_invoice_file(content, "invoices.csv", TODAY)
    assert records[0].buyer_company_name == "Omega"


# ---- File-level behaviour ----

def test_no_header_row_gives_no_records():
    content = "a,b,c\n1,2,3\n".encode("utf-8")
    assert parse_file(content, "misc.csv", DocumentKind.DEPOSIT, TODAY) == []


@pytest.mark.parametrize("filename", ["bank.pdf", "bank.txt", "bank"])
def test_unsupported_extension(filename):
    with pytest.raises(UnsupportedFormat):
        parse_deposit_file(b"whatever", filename, TODAY)


def test_corrupt_spreadsheet_is_a_parse_failure():
    with pytest.raises(ParseFailure):
        parse_invoice_file(b"this is not a spreadsheet", "invoices.xlsx", TODAY)


def test_undecodable_csv_is_a_parse_failure():
    with pytest.raises(ParseFailure):
        parse_deposit_file(b"\xff\xfe\xfa\xff", "bank.csv", TODAY)


# ---- Cell helpers ----

@pytest.mark.parametrize(
    "value, expected",
    [
        ("1,234,567", Decimal("1234567")),
        (" 2 500 ", Decimal("2500")),
        ("12abc", Decimal("12")),
        ("-300", Decimal("-300")),
        ("abc", Decimal("0")),
        ("", Decimal("0")),
        (None, Decimal("0")),
        (float("nan"), Decimal("0")),
        (1500, Decimal("1500")),
        (99.5, Decimal("99.5")),
    ],
)
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-01-15", date(2024, 1, 15)),
        ("2024/01/15", date(2024, 1, 15)),
        ("2024.01.15", date(2024, 1, 15)),
        ("2024-01-15 13:45:00", date(2024, 1, 15)),
        ("01/15/2024", date(2024, 1, 15)),
        ("24.03.05", date(2024, 3, 5)),
        ("31-01-02", date(2031, 1, 2)),
        (datetime(2024, 2, 29, 8, 0), date(2024, 2, 29)),
        (date(2023, 12, 31), date(2023, 12, 31)),
        (45306, date(2024, 1, 15)),
    ],
)
def test_parse_date(value, expected):
    assert parse_date(value, TODAY) == expected


@pytest.mark.parametrize("value", ["8/16/25", "not a date", "2024-13-01", None, ""])
def test_parse_date_falls_back_to_today(value):
    assert parse_date(value, TODAY) == TODAY


def test_excel_serials_around_the_phantom_leap_day():
    assert excel_serial_to_date(1) == date(1900, 1, 1)
    assert excel_serial_to_date(59) == date(1900, 2, 28)
    assert excel_serial_to_date(61) == date(1900, 3, 1)


def test_dedupe_headers():
    assert dedupe_headers(["상호", "대표자명", "상호", None, "상호"]) == [
        "상호", "대표자명", "상호.1", "Unnamed: 3", "상호.2",
    ]


def test_find_header_index():
    rows = [["Account", "123"], [], ["거래일자", "입금(원)"]]
    assert find_header_index(rows, ("거래일자",)) == 2
    assert find_header_index(rows, ("승인번호",)) is None


def test_deposit_csv_rows_with_trailing_delimiter():
    content = (
        "거래일자,거래시간,입금(원),출금(원),내용,거래점\n"
        "2024-01-15,09:30:00,\"1,500\",0,ACME,본점,\n"
        "2024-01-16,10:00:00,700,0,Beta,본점,\n"
    ).encode("utf-8")
    records = parse_deposit_file(content, "bank.csv", TODAY)

    assert [r.deposit_name for r in records] == ["ACME", "Beta"]
    assert [r.transaction_date for r in records] == [date(2024, 1, 15), date(2024, 1, 16)]
    assert [r.deposit_amount for r in records] == [Decimal("1500"), Decimal("700")]
    assert records[0].branch_name == "본점"
