import unittest

import pytest

from ohplus.core.errors import InvalidInputError, NotFoundError
from ohplus.db import collections
from ohplus.services import petty_cash


class AmountTests(unittest.TestCase):
    def test_vat_and_withholding_from_gross(self):
        amounts = petty_cash.compute_amounts(1120)
        self.assertEqual(
            amounts,
            {
                "grossAmount": 1120.0,
                "netOfVat": 1000.0,
                "inputVat": 120.0,
                "onePercent": 10.0,
                "twoPercent": 20.0,
                "netAmount": 1090.0,
            },
        )

    def test_negative_gross_rejected(self):
        with self.assertRaises(InvalidInputError):
            petty_cash.compute_amounts(-1)

    def test_summary_follows_sheet_columns(self):
        rows = [petty_cash.compute_amounts(1120), petty_cash.compute_amounts(560)]
        summary = petty_cash.summarize(rows, 5000)
        self.assertEqual(summary["totals"]["netAmount"], 1635.0)
        self.assertEqual(summary["balanceForDeposit"], 3365.0)
        self.assertEqual(summary["totalPettyCashFund"], -1730.0)
        self.assertEqual(summary["pcfAmountBalance"], 6730.0)


class TransactionServiceTests(unittest.TestCase):
    @pytest.fixture(autouse=True)
    def _use_fake_db(self, fake_db):
        self.db = fake_db

    def test_batch_create_fills_amounts(self):
        created = petty_cash.create_transactions(
            self.db,
            "company-1",
            [{"supplierName": "Shell", "grossAmount": 1120}, {"supplierName": "Office Depot"}],
        )
        self.assertEqual(len(self.db.data[collections.ENCASHMENT_TRANSACTIONS]), 2)
        self.assertEqual(created[0]["netAmount"], 1090.0)
        self.assertEqual(created[1]["grossAmount"], 0.0)
        self.assertEqual(created[1]["company_id"], "company-1")

    def test_bad_row_writes_nothing(self):
        with self.assertRaises(InvalidInputError):
            petty_cash.create_transactions(
                self.db, "company-1", [{"grossAmount": 100}, {"grossAmount": -5}]
            )
        self.assertNotIn(collections.ENCASHMENT_TRANSACTIONS, self.db.data)

    def test_update_recomputes_amounts(self):
        row = petty_cash.create_transaction(self.db, "company-1", {"grossAmount": 1120})
        updated = petty_cash.update_transaction(self.db, "company-1", row["id"], {"grossAmount": 560})
        self.assertEqual(updated["netOfVat"], 500.0)
        self.assertEqual(updated["netAmount"], 545.0)

    def test_other_company_rows_are_hidden(self):
        row = petty_cash.create_transaction(self.db, "company-2", {"grossAmount": 100})
        with self.assertRaises(NotFoundError):
            petty_cash.update_transaction(self.db, "company-1", row["id"], {"grossAmount": 1})
        with self.assertRaises(NotFoundError):
            petty_cash.delete_transactions(self.db, "company-1", [row["id"]])
        self.assertEqual(petty_cash.list_transactions(self.db, "company-1"), [])
        self.assertIn(row["id"], self.db.data[collections.ENCASHMENT_TRANSACTIONS])


def test_petty_cash_endpoints(client, fake_db, api_user):
    api_user["roles"] = ["treasury"]

    res = client.post(
        "/api/petty-cash/settings",
        json={"pettyCashFundName": "Main PCF", "pettyCashFundAmount": 5000, "cutOffPeriod": "15th"},
    )
    assert res.status_code == 201
    settings_id = res.json()["id"]
    res = client.patch(f"/api/petty-cash/settings/{settings_id}", json={"pettyCashFundAmount": 6000})
    assert res.json()["pettyCashFundAmount"] == 6000

    res = client.post("/api/petty-cash/transactions", json={"supplierName": "Shell", "grossAmount": 1120})
    assert res.status_code == 201
    first = res.json()
    assert first["inputVat"] == 120.0

    res = client.post(
        "/api/petty-cash/transactions/batch",
        json={"transactions": [{"grossAmount": 560}, {"grossAmount": 224}]},
    )
    assert res.status_code == 201
    batch_ids = [row["id"] for row in res.json()["transactions"]]
    assert len(client.get("/api/petty-cash/transactions").json()["transactions"]) == 3

    summary = client.get("/api/petty-cash/summary").json()
    assert summary["fundAmount"] == 6000
    assert summary["totals"]["grossAmount"] == 1904.0
    assert summary["settings"]["pettyCashFundName"] == "Main PCF"

    res = client.post("/api/petty-cash/transactions/delete", json={"ids": batch_ids})
    assert res.json() == {"deleted": 2}
    assert client.delete(f"/api/petty-cash/transactions/{first['id']}").status_code == 204
    assert client.get("/api/petty-cash/transactions").json()["transactions"] == []

    res = client.post("/api/petty-cash/transactions", json={"grossAmount": -1})
    assert res.status_code == 422

    assert client.delete(f"/api/petty-cash/settings/{settings_id}").status_code == 204
    assert client.get("/api/petty-cash/summary").json()["settings"] is None


def test_petty_cash_requires_treasury_department(client):
    assert client.get("/api/petty-cash/transactions").status_code == 403
