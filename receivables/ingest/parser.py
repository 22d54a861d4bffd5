# receivables/ingest/parser.py
"""
Tolerant parser for tax-invoice and bank-deposit exports.

Exports from the tax portal and from internet banking put a few lines of
preamble (account number, period, etc.) above the real table, so the header
row is discovered by scanning the first rows for a known column title. Column
titles are matched against the Korean labels the exports use as well as plain
English equivalents.

Tax invoice exports describe both parties with the same column titles
(company name, representative, address). The first occurrence is the supplier
and the second one is the buyer; duplicates are renamed "<title>.1", "<title>.2"
the same way pandas does for CSV.
"""

import csv
import io
import logging
import math
import re
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from receivables.core.config import local_today, settings
from receivables.errors import ParseFailure, UnsupportedFormat
from receivables.models.deposits import DepositRecord
from receivables.models.invoices import InvoiceRecord

logger = logging.getLogger(__name__)


class DocumentKind(str, Enum):
    INVOICE = "invoice"
    DEPOSIT = "deposit"


# ---- Column titles ----

INVOICE_COLUMNS = {
    "approval_number": ("승인번호", "승인 번호", "ApprovalNumber", "Approval Number"),
    "issue_date": ("발급일자", "발급 일자", "IssueDate", "Issue Date"),
    "supplier_business_number": ("공급자사업자등록번호", "SupplierBusinessNumber"),
    "buyer_business_number": ("공급받는자사업자등록번호", "BuyerBusinessNumber"),
    # repeated per party: supplier first, buyer second
    "company_name": ("상호", "CompanyName", "Company Name"),
    "representative": ("대표자명", "Representative"),
    "address": ("주소", "Address"),
    "buyer_email": ("공급받는자 이메일1", "공급받는자 이메일", "BuyerEmail"),
    "total_amount": ("합계금액", "TotalAmount", "Total Amount"),
    "supply_amount": ("공급가액", "SupplyAmount", "Supply Amount"),
    "tax_amount": ("세액", "TaxAmount", "Tax Amount"),
    "receipt_or_bill": ("영수/청구 구분", "ReceiptOrBill"),
    "item_name": ("품목명", "ItemName", "Item Name"),
}

DEPOSIT_COLUMNS = {
    "transaction_date": ("거래일자", "TransactionDate", "Transaction Date"),
    "transaction_time": ("거래시간", "TransactionTime", "Transaction Time"),
    "transaction_type": ("적요", "TransactionType", "Transaction Type"),
    "withdrawal_amount": ("출금(원)", "출금", "Withdrawal"),
    "deposit_amount": ("입금(원)", "입금", "Deposit"),
    "deposit_name": ("내용", "DepositName", "Depositor"),
    "balance": ("잔액(원)", "잔액", "Balance"),
    "branch_name": ("거래점", "Branch"),
}

KEY_FIELD = {
    DocumentKind.INVOICE: "approval_number",
    DocumentKind.DEPOSIT: "transaction_date",
}

RECEIPT_LABELS = ("영수", "RECEIPT", "Receipt")

# 1900 date system, including the phantom 1900-02-29 (serial 60)
EXCEL_EPOCH = date(1899, 12, 30)

_DATE_SPLIT_RX = re.compile(r"[-/.]")
_LEADING_NUMBER_RX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

Row = Dict[str, Any]


def columns_for(kind: DocumentKind) -> Dict[str, Sequence[str]]:
    return INVOICE_COLUMNS if kind is DocumentKind.INVOICE else DEPOSIT_COLUMNS


def key_titles(kind: DocumentKind) -> Sequence[str]:
    return columns_for(kind)[KEY_FIELD[kind]]


# ---- Cell helpers ----

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def _text(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    # spreadsheet cells holding numeric ids come back as floats
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_amount(value: Any) -> Decimal:
    """
    Parse a money cell. Thousands separators and whitespace are stripped;
    anything that does not start with a number becomes 0.
    """
    if _is_blank(value) or isinstance(value, bool):
        return Decimal("0")

    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")

    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return Decimal("0")
        return Decimal(str(value))

    cleaned = re.sub(r"[,\s]", "", str(value))
    m = _LEADING_NUMBER_RX.match(cleaned)
    if not m:
        return Decimal("0")
    try:
        return Decimal(m.group(0))
    except InvalidOperation:
        return Decimal("0")


def excel_serial_to_date(serial: Union[int, float]) -> date:
    days = int(serial)
    if days < 60:
        # before the phantom leap day the count starts one day later
        return date(1899, 12, 31) + timedelta(days=days)
    return EXCEL_EPOCH + timedelta(days=days)


def parse_date(value: Any, today: Optional[date] = None) -> date:
    """
    Parse a date cell.

    Accepts date/datetime cells, spreadsheet serial numbers and delimited text
    (Y-M-D, Y/M/D, Y.M.D or M/D/Y). Text is read as M/D/Y only when the first
    part has at most two characters and the last part is greater than 31.
    Two-digit years get a "20" prefix. Anything unparseable falls back to
    today; this is lossy and is logged.
    """
    fallback = today or local_today()

    if _is_blank(value):
        return fallback

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return excel_serial_to_date(value)
        except (OverflowError, ValueError):
            logger.warning("Unusable date serial %r, using %s", value, fallback)
            return fallback

    raw = str(value).strip()
    parts = _DATE_SPLIT_RX.split(raw.split()[0])

    if len(parts) == 3:
        year, month, day = parts
        try:
            if len(parts[0]) <= 2 and int(parts[2]) > 31:
                month, day, year = parts
            if len(year) == 2:
                year = "20" + year
            return date(int(year), int(month), int(day))
        except ValueError:
            pass

    logger.warning("Unparseable date %r, using %s", value, fallback)
    return fallback


def _time_text(value: Any) -> str:
    if _is_blank(value):
        return ""
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, datetime):
        return value.strftime("%H:%M:%S")
    return str(value).strip()


# ---- Header discovery ----

def dedupe_headers(cells: Sequence[Any]) -> List[str]:
    """
    Turn a header row into unique column names. Repeated titles get a
    positional suffix: "상호", "상호.1", "상호.2".
    """
    names: List[str] = []
    counts: Dict[str, int] = {}
    for i, cell in enumerate(cells):
        title = _text(cell) or f"Unnamed: {i}"
        n = counts.get(title, 0)
        counts[title] = n + 1
        names.append(title if n == 0 else f"{title}.{n}")
    return names


def find_header_index(rows: Sequence[Sequence[Any]], titles: Sequence[str]) -> Optional[int]:
    """Index of the first row containing one of titles, or None."""
    wanted = set(titles)
    for i, row in enumerate(rows):
        if any(_text(cell) in wanted for cell in row):
            return i
    return None


def _lookup(row: Row, titles: Sequence[str], occurrence: int = 0) -> Any:
    for title in titles:
        if occurrence == 0:
            candidates = (title,)
        else:
            candidates = (f"{title}.{occurrence}", f"{title}_{occurrence}")
        for name in candidates:
            if name in row and not _is_blank(row[name]):
                return row[name]
    return None


def _counterparty(row: Row, titles: Sequence[str]) -> Any:
    value = _lookup(row, titles, occurrence=1)
    return value if value is not None else _lookup(row, titles)


# ---- Readers ----

def _extension(filename: str) -> str:
    name = (filename or "").lower()
    return name[name.rfind("."):] if "." in name else ""


def _decode(content: bytes, filename: str) -> str:
    for encoding in ("utf-8-sig", "cp949"):
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ParseFailure(filename, "text encoding is not supported (expected UTF-8 or CP949)")


def _read_csv_rows(content: bytes, filename: str, kind: DocumentKind) -> List[Row]:
    text = _decode(content, filename)
    lines = text.splitlines(keepends=True)

    head = []
    for line in lines[: settings.HEADER_SCAN_ROWS]:
        head.append(next(csv.reader([line]), []))

    header_index = find_header_index(head, key_titles(kind))
    if header_index is None:
        logger.warning("No %s header found in the first %s lines of %s", kind.value, settings.HEADER_SCAN_ROWS, filename)
        return []

    body = "".join(lines[header_index:])
    rows: List[Row] = []
    try:
        reader = pd.read_csv(
            io.StringIO(body),
            header=0,
            index_col=False,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            chunksize=settings.CSV_CHUNK_SIZE,
        )
        for chunk in reader:
            chunk.columns = [str(c).strip() for c in chunk.columns]
            rows.extend(chunk.to_dict("records"))
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        raise ParseFailure(filename, str(e)) from e

    return rows


def _read_excel_rows(content: bytes, filename: str, kind: DocumentKind) -> List[Row]:
    try:
        df = pd.read_excel(io.BytesIO(content), sheet_name=0, header=None, dtype=object)
    except Exception as e:
        # openpyxl / xlrd / zipfile each raise their own types for corrupt files
        raise ParseFailure(filename, str(e)) from e

    grid = df.where(pd.notnull(df), None).values.tolist()

    header_index = find_header_index(grid[: settings.HEADER_SCAN_ROWS], key_titles(kind))
    if header_index is None:
        logger.warning("No %s header found in the first %s rows of %s", kind.value, settings.HEADER_SCAN_ROWS, filename)
        return []

    columns = dedupe_headers(grid[header_index])
    return [dict(zip(columns, values)) for values in grid[header_index + 1:]]


def read_rows(content: bytes, filename: str, kind: DocumentKind) -> List[Row]:
    """Raw rows (column name -> cell) below the discovered header row."""
    ext = _extension(filename)
    if ext not in settings.allowed_extensions:
        raise UnsupportedFormat(filename)
    if ext == ".csv":
        return _read_csv_rows(content, filename, kind)
    return _read_excel_rows(content, filename, kind)


# ---- Row mapping ----

def _is_admissible(row: Row, kind: DocumentKind) -> bool:
    titles = key_titles(kind)
    key = _text(_lookup(row, titles))
    return bool(key) and key not in titles


def invoice_from_row(row: Row, today: Optional[date] = None) -> Optional[InvoiceRecord]:
    cols = INVOICE_COLUMNS
    if not _is_admissible(row, DocumentKind.INVOICE):
        return None

    approval_number = _text(_lookup(row, cols["approval_number"]))
    total_amount = parse_amount(_lookup(row, cols["total_amount"]))
    if total_amount < 0:
        logger.warning("Rejected invoice %s: negative total %s", approval_number, total_amount)
        return None

    receipt_or_bill = _text(_lookup(row, cols["receipt_or_bill"]))

    return InvoiceRecord(
        approval_number=approval_number,
        issue_date=parse_date(_lookup(row, cols["issue_date"]), today),
        supplier_business_number=_text(_lookup(row, cols["supplier_business_number"])),
        supplier_company_name=_text(_lookup(row, cols["company_name"])),
        buyer_business_number=_text(_lookup(row, cols["buyer_business_number"])),
        buyer_company_name=_text(_counterparty(row, cols["company_name"])),
        buyer_representative=_text(_counterparty(row, cols["representative"])),
        buyer_address=_text(_counterparty(row, cols["address"])),
        buyer_email=_text(_lookup(row, cols["buyer_email"])),
        total_amount=total_amount,
        supply_amount=parse_amount(_lookup(row, cols["supply_amount"])),
        tax_amount=parse_amount(_lookup(row, cols["tax_amount"])),
        transaction_type="RECEIPT" if receipt_or_bill in RECEIPT_LABELS else "BILL",
        item_name=_text(_lookup(row, cols["item_name"])),
    )


def deposit_from_row(row: Row, today: Optional[date] = None) -> Optional[DepositRecord]:
    cols = DEPOSIT_COLUMNS
    if not _is_admissible(row, DocumentKind.DEPOSIT):
        return None

    # withdrawals share the sheet; only money coming in is kept
    deposit_amount = parse_amount(_lookup(row, cols["deposit_amount"]))
    if deposit_amount <= 0:
        return None

    balance = _lookup(row, cols["balance"])

    return DepositRecord(
        transaction_date=parse_date(_lookup(row, cols["transaction_date"]), today),
        transaction_time=_time_text(_lookup(row, cols["transaction_time"])),
        transaction_type=_text(_lookup(row, cols["transaction_type"])),
        deposit_amount=deposit_amount,
        withdrawal_amount=parse_amount(_lookup(row, cols["withdrawal_amount"])),
        deposit_name=_text(_lookup(row, cols["deposit_name"])) or "",
        balance=parse_amount(balance) if balance is not None else None,
        branch_name=_text(_lookup(row, cols["branch_name"])),
    )


def parse_file(
    content: bytes,
    filename: str,
    kind: DocumentKind,
    today: Optional[date] = None,
) -> Union[List[InvoiceRecord], List[DepositRecord]]:
    """
    Parse one uploaded file into typed records, in file order.

    Raises UnsupportedFormat for unknown extensions and ParseFailure for
    corrupt content. Returns [] when no header row is found. Duplicates are
    not removed here.
    """
    kind = DocumentKind(kind)
    today = today or local_today()
    to_record = invoice_from_row if kind is DocumentKind.INVOICE else deposit_from_row

    rows = read_rows(content, filename, kind)
    records = []
    for row in rows:
        record = to_record(row, today)
        if record is not None:
            records.append(record)

    logger.info("Parsed %s: %s %s rows kept of %s", filename, len(records), kind.value, len(rows))
    return records


def parse_invoice_file(content: bytes, filename: str, today: Optional[date] = None) -> List[InvoiceRecord]:
    return parse_file(content, filename, DocumentKind.INVOICE, today)


def parse_deposit_file(content: bytes, filename: str, today: Optional[date] = None) -> List[DepositRecord]:
    return parse_file(content, filename, DocumentKind.DEPOSIT, today)
