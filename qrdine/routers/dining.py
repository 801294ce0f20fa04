# qrdine/routers/dining.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from qrdine.db import get_db
from qrdine.deps import require_auth, require_role, commit_or_503
from qrdine.models.core import DiningTable
from qrdine.schemas.tables import TableIn, TablePatch, TableOut

router = APIRouter(prefix="/dining", tags=["dining"])


def _row_from_table(t: DiningTable) -> TableOut:
    return TableOut(
        id=t.id,
        name=t.name,
        seats=t.seats,
        is_occupied=bool(t.is_occupied),
        current_order_id=t.current_order_id,
    )


@router.post("/tables", response_model=TableOut)
def create_table(
    body: TableIn,
    db: Session = Depends(get_db),
    sub: str = Depends(require_role("admin")),
):
    t = DiningTable(**body.model_dump())
    db.add(t)
    commit_or_503(db, "create table", refresh=t)
    return _row_from_table(t)


@router.get("/tables", response_model=List[TableOut])
def list_tables(
    db: Session = Depends(get_db),
    sub: str = Depends(require_auth),
):
    rows: List[DiningTable] = db.query(DiningTable).order_by(DiningTable.name.asc()).all()
    return [_row_from_table(t) for t in rows]


@router.get("/tables/{table_id}", response_model=TableOut)
def get_table(table_id: str, db: Session = Depends(get_db)):
    """Public: the customer menu resolves the table name from the QR code's id."""
    t = db.get(DiningTable, table_id)
    if not t:
        raise HTTPException(status_code=404, detail="table not found")
    return _row_from_table(t)


@router.patch("/tables/{table_id}", response_model=TableOut)
def update_table(
    table_id: str,
    body: TablePatch,
    db: Session = Depends(get_db),
    sub: str = Depends(require_role("admin", "staff")),
):
    t = db.get(DiningTable, table_id)
    if not t:
        raise HTTPException(status_code=404, detail="table not found")
    for k, v in body.model_dump(exclude_unset=True).items():
        setattr(t, k, v)
    commit_or_503(db, "update table", refresh=t)
    return _row_from_table(t)


@router.delete("/tables/{table_id}")
def delete_table(
    table_id: str,
    db: Session = Depends(get_db),
    sub: str = Depends(require_role("admin")),
):
    """
    Hard delete. Orders reference tables by id only, so historical orders for
    this table stay exactly as they were.
    """
    t = db.get(DiningTable, table_id)
    if not t:
        raise HTTPException(status_code=404, detail="table not found")
    db.delete(t)
    commit_or_503(db, "delete table")
    return {"ok": True, "id": table_id}
