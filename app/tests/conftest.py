"""
Pytest configuration and fixtures
"""
from datetime import date, time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from app.main import app
from app.db.base import Base
from app.core.deps import get_db

# Import all models to ensure they're registered with Base.metadata
from app.models import (
    Employee,
    EmployeeSchedule,
    LeaveRequest,
    LeaveStatus,
    Attendance,
    AttendancePoint,
    AttendanceUpload,
    BiometricRecord,
    Notification,
)  # noqa

ALL_DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

HEADER = "No\tDevNo\tUserId\tName\tMode\tDateTime"


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_employee(db, last_name, first_name, middle_name=None, emp_code=None):
    employee = Employee(
        emp_code=emp_code,
        last_name=last_name,
        first_name=first_name,
        middle_name=middle_name,
        active=True,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


def _make_schedule(db, employee, time_in, time_out, work_days=None, shift_type="regular", grace=15, site_id=None):
    schedule = EmployeeSchedule(
        employee_id=employee.id,
        site_id=site_id,
        shift_type=shift_type,
        scheduled_time_in=time_in,
        scheduled_time_out=time_out,
        work_days=list(work_days if work_days is not None else ALL_DAYS),
        grace_period_minutes=grace,
        is_active=True,
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    return schedule


def _make_leave(db, employee, start, end, leave_type="VL", status=LeaveStatus.APPROVED):
    leave = LeaveRequest(
        employee_id=employee.id,
        leave_type=leave_type,
        status=status,
        start_date=start,
        end_date=end,
    )
    db.add(leave)
    db.commit()
    db.refresh(leave)
    return leave


def _export_content(*rows):
    """Build a device export from (name, 'YYYY-MM-DD HH:MM:SS') pairs."""
    lines = [HEADER]
    for index, (name, stamp) in enumerate(rows, start=1):
        lines.append(f"{index}\t1\t{100 + index}\t{name}\tFP\t{stamp}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def day_employee(db):
    """Employee on a 08:00-17:00 weekday schedule"""
    employee = _make_employee(db, "Nodado", "Arnel", emp_code="EMP001")
    _make_schedule(db, employee, time(8, 0), time(17, 0))
    return employee


@pytest.fixture
def shift_date():
    # A Wednesday
    return date(2025, 11, 5)


@pytest.fixture
def make_employee(db):
    return lambda *args, **kwargs: _make_employee(db, *args, **kwargs)


@pytest.fixture
def make_schedule(db):
    return lambda *args, **kwargs: _make_schedule(db, *args, **kwargs)


@pytest.fixture
def make_leave(db):
    return lambda *args, **kwargs: _make_leave(db, *args, **kwargs)


@pytest.fixture
def export_content():
    return _export_content
