import io
import os

# Must be set before payroll_import.database is imported
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook

from payroll_import.database import Base, SessionLocal, engine, get_db
from payroll_import.models import Employee
from main import app


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def employees(db):
    ids = ["DB01234", "DB01235", "DB01236"]
    for employee_id in ids:
        db.add(Employee(employee_id=employee_id, full_name=f"Employee {employee_id}"))
    db.commit()
    return ids


def build_xlsx(rows):
    """Workbook bytes whose first sheet holds rows exactly as given (None = empty cell)"""
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_csv(rows):
    lines = [",".join("" if value is None else str(value) for value in row) for row in rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture()
def xlsx():
    return build_xlsx


@pytest.fixture()
def csv_file():
    return build_csv
