from datetime import datetime, timezone
from decimal import Decimal

import pytest

from catalog_sync.errors import MalformedRecordError
from catalog_sync.products import Product, format_timestamp, parse_timestamp
from tests.conftest import BASE_TIME, make_product


def test_header_follows_field_order():
    assert Product.csv_header() == "id,label,price,created_at,updated_at,deleted_at"


def test_live_product_round_trips_with_empty_trailing_field():
    product = make_product(updated_at=datetime(2024, 3, 2, 8, 30, 15, 123456, tzinfo=timezone.utc))
    line = product.to_csv()

    assert line.endswith(",")
    assert Product.from_csv(line) == product


def test_tombstoned_product_round_trips():
    product = make_product(deleted_at=datetime(2024, 3, 5, tzinfo=timezone.utc))

    decoded = Product.from_csv(product.to_csv())

    assert decoded == product
    assert decoded.is_deleted


def test_serialized_fields():
    product = make_product(price=Decimal("5"))

    assert product.to_csv() == (
        "7f1c2d3e-0000-4000-8000-000000000001,Product_1,5.00,"
        "2024-03-01T12:00:00.000000Z,2024-03-01T12:00:00.000000Z,"
    )


def test_accepts_millisecond_timestamps_and_line_terminators():
    line = "abc,Product_9,12.5,2024-03-01T12:00:00.123Z,2024-03-01T12:00:00.123Z,\r\n"

    product = Product.from_csv(line)

    assert product.id == "abc"
    assert product.price == Decimal("12.5")
    assert product.created_at == datetime(2024, 3, 1, 12, 0, 0, 123000, tzinfo=timezone.utc)
    assert product.deleted_at is None


def test_rejects_wrong_field_count():
    with pytest.raises(MalformedRecordError) as excinfo:
        Product.from_csv("abc,Product_1,1.00", line_number=7)

    assert excinfo.value.line_number == 7
    assert "expected 6 fields" in str(excinfo.value)


@pytest.mark.parametrize(
    "line",
    [
        "abc,Product_1,cheap,2024-03-01T12:00:00.000Z,2024-03-01T12:00:00.000Z,",
        "abc,Product_1,NaN,2024-03-01T12:00:00.000Z,2024-03-01T12:00:00.000Z,",
        "abc,Product_1,1.00,yesterday,2024-03-01T12:00:00.000Z,",
        "abc,Product_1,1.00,2024-03-01T12:00:00.000Z,2024-03-01T12:00:00.000Z,soon",
        ",Product_1,1.00,2024-03-01T12:00:00.000Z,2024-03-01T12:00:00.000Z,",
    ],
)
def test_rejects_unparseable_values(line):
    with pytest.raises(MalformedRecordError):
        Product.from_csv(line)


def test_timestamps_normalize_to_utc():
    naive = datetime(2024, 3, 1, 12, 0, 0)

    assert format_timestamp(naive) == format_timestamp(BASE_TIME)
    assert parse_timestamp("2024-03-01T14:00:00+02:00") == BASE_TIME
