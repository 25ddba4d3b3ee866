from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ohplus.core.security import require_roles
from ohplus.db.firestore import get_db
from ohplus.services import petty_cash

router = APIRouter(tags=["Petty Cash"])

treasury_user = require_roles("accounting", "treasury", "finance")


class SettingsIn(BaseModel):
    companyName: str | None = None
    pettyCashFundReplenishment: str | None = None
    cutOffPeriod: str | None = None
    pettyCashFundName: str | None = None
    pettyCashFundAmount: float | None = Field(None, ge=0)


class TransactionIn(BaseModel):
    category: str | None = None
    month: str | None = None
    date: str | None = None
    pettyCashVoucherNo: str | None = None
    supplierName: str | None = None
    description: str | None = None
    accountTitle: str | None = None
    documentTypeNo: str | None = None
    tinNo: str | None = None
    companyAddress: str | None = None
    grossAmount: float | None = Field(None, ge=0)


class TransactionBatch(BaseModel):
    transactions: list[TransactionIn] = Field(..., min_length=1)


class TransactionIds(BaseModel):
    ids: list[str] = Field(..., min_length=1)


@router.get("/petty-cash/settings")
def list_settings(current_user: dict = Depends(treasury_user), db=Depends(get_db)):
    return {"settings": petty_cash.list_settings(db, current_user.get("company_id"))}


@router.post("/petty-cash/settings", status_code=status.HTTP_201_CREATED)
def create_settings(
    payload: SettingsIn, current_user: dict = Depends(treasury_user), db=Depends(get_db)
):
    return petty_cash.create_settings(db, current_user.get("company_id"), payload.model_dump())


@router.patch("/petty-cash/settings/{settings_id}")
def update_settings(
    settings_id: str,
    payload: SettingsIn,
    current_user: dict = Depends(treasury_user),
    db=Depends(get_db),
):
    return petty_cash.update_settings(
        db, current_user.get("company_id"), settings_id, payload.model_dump(exclude_unset=True)
    )


@router.delete("/petty-cash/settings/{settings_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_settings(settings_id: str, current_user: dict = Depends(treasury_user), db=Depends(get_db)):
    petty_cash.delete_settings(db, current_user.get("company_id"), settings_id)


@router.get("/petty-cash/transactions")
def list_transactions(current_user: dict = Depends(treasury_user), db=Depends(get_db)):
    return {"transactions": petty_cash.list_transactions(db, current_user.get("company_id"))}


@router.post("/petty-cash/transactions", status_code=status.HTTP_201_CREATED)
def create_transaction(
    payload: TransactionIn, current_user: dict = Depends(treasury_user), db=Depends(get_db)
):
    return petty_cash.create_transaction(db, current_user.get("company_id"), payload.model_dump())


@router.post("/petty-cash/transactions/batch", status_code=status.HTTP_201_CREATED)
def create_transactions(
    payload: TransactionBatch, current_user: dict = Depends(treasury_user), db=Depends(get_db)
):
    rows = [row.model_dump() for row in payload.transactions]
    return {"transactions": petty_cash.create_transactions(db, current_user.get("company_id"), rows)}


@router.patch("/petty-cash/transactions/{transaction_id}")
def update_transaction(
    transaction_id: str,
    payload: TransactionIn,
    current_user: dict = Depends(treasury_user),
    db=Depends(get_db),
):
    return petty_cash.update_transaction(
        db, current_user.get("company_id"), transaction_id, payload.model_dump(exclude_unset=True)
    )


@router.post("/petty-cash/transactions/delete")
def delete_transactions(
    payload: TransactionIds, current_user: dict = Depends(treasury_user), db=Depends(get_db)
):
    return {"deleted": petty_cash.delete_transactions(db, current_user.get("company_id"), payload.ids)}


@router.delete("/petty-cash/transactions/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(
    transaction_id: str, current_user: dict = Depends(treasury_user), db=Depends(get_db)
):
    petty_cash.delete_transactions(db, current_user.get("company_id"), [transaction_id])


@router.get("/petty-cash/summary")
def fund_summary(current_user: dict = Depends(treasury_user), db=Depends(get_db)):
    return petty_cash.fund_summary(db, current_user.get("company_id"))
