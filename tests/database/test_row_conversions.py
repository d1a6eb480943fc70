from datetime import date, datetime, time, timedelta
from decimal import Decimal

import mysql.connector
import pytest

from src.school_management.school_management.database.mysql_base import (
    as_date,
    in_clause,
    is_duplicate_key,
    money,
    normalize_mysql_time,
)


def test_money_accepts_connector_types():
    assert money(None) == Decimal("0")
    assert money(Decimal("12.50")) == Decimal("12.50")
    assert money("4100.00") == Decimal("4100.00")
    assert money(7) == Decimal("7")


def test_as_date():
    assert as_date(None) is None
    assert as_date(datetime(2026, 3, 10, 9, 40)) == date(2026, 3, 10)
    assert as_date(date(2026, 3, 10)) == date(2026, 3, 10)
    assert as_date("2026-03-10") == date(2026, 3, 10)


def test_time_from_timedelta_and_string():
    assert normalize_mysql_time(timedelta(hours=18)) == time(18, 0)
    assert normalize_mysql_time("10:00") == time(10, 0)
    assert normalize_mysql_time(time(14, 0)) == time(14, 0)
    with pytest.raises(ValueError):
        normalize_mysql_time("10")


def test_in_clause():
    assert in_clause([1, 2, 3]) == "%s, %s, %s"
    with pytest.raises(ValueError):
        in_clause([])


def test_duplicate_key_detection():
    assert is_duplicate_key(mysql.connector.IntegrityError(msg="dup", errno=1062))
    assert not is_duplicate_key(mysql.connector.IntegrityError(msg="fk", errno=1452))
    assert not is_duplicate_key(ValueError("nope"))
