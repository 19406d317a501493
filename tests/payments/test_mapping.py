import pytest

from paygate.infrastructure.external.payments.mapping import format_amount, to_amount


@pytest.mark.parametrize(
    "value,expected",
    [
        (50000, 50000),
        (50000.0, 50000),
        ("50000.00", 50000),
        (None, 0),
        ("", 0),
        (True, 0),
        ("abc", 0),
        ("Infinity", 0),
        ("-Infinity", 0),
        ("NaN", 0),
    ],
)
def test_to_amount(value, expected):
    assert to_amount(value) == expected


def test_format_amount():
    assert format_amount(50000) == "50000"
