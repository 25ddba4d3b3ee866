"""Petty cash fund settings and the transactions booked against the fund.

Gross amounts are VAT inclusive. Net of VAT, input VAT and the 1% and 2%
withholding figures are derived from the gross amount when a transaction is
saved, and the fund summary follows the encashment sheet columns.
"""

import logging

from ohplus.core.errors import InvalidInputError, NotFoundError
from ohplus.db import collections
from ohplus.db.firestore import (
    DESCENDING,
    create_document,
    require_document,
    stream_dicts,
    update_document,
    utcnow,
    where,
)

logger = logging.getLogger("ohplus.petty_cash")

VAT_RATE = 0.12
ONE_PERCENT = 0.01
TWO_PERCENT = 0.02

SETTINGS_FIELDS = (
    "companyName",
    "pettyCashFundReplenishment",
    "cutOffPeriod",
    "pettyCashFundName",
    "pettyCashFundAmount",
)
TRANSACTION_FIELDS = (
    "category",
    "month",
    "date",
    "pettyCashVoucherNo",
    "supplierName",
    "description",
    "accountTitle",
    "documentTypeNo",
    "tinNo",
    "companyAddress",
    "grossAmount",
)
AMOUNT_FIELDS = ("grossAmount", "netOfVat", "inputVat", "onePercent", "twoPercent", "netAmount")


def compute_amounts(gross_amount: float) -> dict:
    gross = float(gross_amount or 0)
    if gross < 0:
        raise InvalidInputError("Gross amount cannot be negative")
    net_of_vat = gross / (1 + VAT_RATE)
    one_percent = net_of_vat * ONE_PERCENT
    two_percent = net_of_vat * TWO_PERCENT
    return {
        "grossAmount": round(gross, 2),
        "netOfVat": round(net_of_vat, 2),
        "inputVat": round(net_of_vat * VAT_RATE, 2),
        "onePercent": round(one_percent, 2),
        "twoPercent": round(two_percent, 2),
        "netAmount": round(gross - one_percent - two_percent, 2),
    }


def summarize(transactions: list[dict], fund_amount: float) -> dict:
    totals = {
        field: round(sum(float(t.get(field) or 0) for t in transactions), 2)
        for field in AMOUNT_FIELDS
    }
    fund = float(fund_amount or 0)
    balance_for_deposit = fund - totals["netAmount"]
    total_fund = totals["netAmount"] - balance_for_deposit
    return {
        "totals": totals,
        "fundAmount": round(fund, 2),
        "balanceForDeposit": round(balance_for_deposit, 2),
        "totalPettyCashFund": round(total_fund, 2),
        "pcfAmountBalance": round(fund - total_fund, 2),
    }


def _scoped(db, collection: str, company_id: str):
    query = where(db.collection(collection), "company_id", "==", company_id)
    return query.order_by("created", direction=DESCENDING)


def _require_owned(db, collection: str, doc_id: str, company_id: str, label: str) -> dict:
    document = require_document(db, collection, doc_id, label)
    if document.get("company_id") != company_id:
        raise NotFoundError(f"{label} not found")
    return document


def _settings_payload(data: dict) -> dict:
    payload = {key: data[key] for key in SETTINGS_FIELDS if data.get(key) is not None}
    if float(payload.get("pettyCashFundAmount") or 0) < 0:
        raise InvalidInputError("Fund amount cannot be negative")
    return payload


def create_settings(db, company_id: str, data: dict) -> dict:
    stamp = utcnow()
    payload = {**_settings_payload(data), "company_id": company_id, "created": stamp, "updated": stamp}
    return create_document(db, collections.ENCASHMENT_SETTINGS, payload)


def list_settings(db, company_id: str) -> list[dict]:
    return stream_dicts(_scoped(db, collections.ENCASHMENT_SETTINGS, company_id))


def update_settings(db, company_id: str, settings_id: str, changes: dict) -> dict:
    _require_owned(db, collections.ENCASHMENT_SETTINGS, settings_id, company_id, "Petty cash settings")
    update_document(
        db,
        collections.ENCASHMENT_SETTINGS,
        settings_id,
        {**_settings_payload(changes), "updated": utcnow()},
    )
    return require_document(db, collections.ENCASHMENT_SETTINGS, settings_id, "Petty cash settings")


def delete_settings(db, company_id: str, settings_id: str) -> None:
    _require_owned(db, collections.ENCASHMENT_SETTINGS, settings_id, company_id, "Petty cash settings")
    db.collection(collections.ENCASHMENT_SETTINGS).document(settings_id).delete()


def _transaction_payload(data: dict) -> dict:
    payload = {key: data[key] for key in TRANSACTION_FIELDS if data.get(key) is not None}
    if "grossAmount" in payload:
        payload.update(compute_amounts(payload["grossAmount"]))
    return payload


def create_transactions(db, company_id: str, rows: list[dict]) -> list[dict]:
    """Rows are validated first and then written in a single batch."""
    if not rows:
        raise InvalidInputError("At least one transaction is required")
    stamp = utcnow()
    payloads = [
        {
            **compute_amounts(0),
            **_transaction_payload(row),
            "company_id": company_id,
            "created": stamp,
            "updated": stamp,
        }
        for row in rows
    ]
    batch = db.batch()
    created = []
    for payload in payloads:
        ref = db.collection(collections.ENCASHMENT_TRANSACTIONS).document()
        batch.set(ref, payload)
        created.append({**payload, "id": ref.id})
    batch.commit()
    logger.info("petty cash transactions created company_id=%s count=%s", company_id, len(created))
    return created


def create_transaction(db, company_id: str, data: dict) -> dict:
    return create_transactions(db, company_id, [data])[0]


def list_transactions(db, company_id: str) -> list[dict]:
    return stream_dicts(_scoped(db, collections.ENCASHMENT_TRANSACTIONS, company_id))


def update_transaction(db, company_id: str, transaction_id: str, changes: dict) -> dict:
    _require_owned(db, collections.ENCASHMENT_TRANSACTIONS, transaction_id, company_id, "Transaction")
    update_document(
        db,
        collections.ENCASHMENT_TRANSACTIONS,
        transaction_id,
        {**_transaction_payload(changes), "updated": utcnow()},
    )
    return require_document(db, collections.ENCASHMENT_TRANSACTIONS, transaction_id, "Transaction")


def delete_transactions(db, company_id: str, transaction_ids: list[str]) -> int:
    for transaction_id in transaction_ids:
        _require_owned(db, collections.ENCASHMENT_TRANSACTIONS, transaction_id, company_id, "Transaction")
    batch = db.batch()
    for transaction_id in transaction_ids:
        batch.delete(db.collection(collections.ENCASHMENT_TRANSACTIONS).document(transaction_id))
    batch.commit()
    return len(transaction_ids)


def fund_summary(db, company_id: str) -> dict:
    settings = list_settings(db, company_id)
    current = settings[0] if settings else {}
    summary = summarize(list_transactions(db, company_id), current.get("pettyCashFundAmount"))
    return {**summary, "settings": current or None}
