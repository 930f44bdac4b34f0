"""Tests for the order model and derived fulfillment status."""
from datetime import datetime, timedelta, timezone

import pytest

from storefront.shared.models import FulfillmentStatus, derive_fulfillment_status

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("elapsed", "expected"),
    [
        (timedelta(0), FulfillmentStatus.processing),
        (timedelta(days=1, hours=23), FulfillmentStatus.processing),
        (timedelta(days=2), FulfillmentStatus.shipped),
        (timedelta(days=6, hours=23), FulfillmentStatus.shipped),
        (timedelta(days=7), FulfillmentStatus.delivered),
        (timedelta(days=30), FulfillmentStatus.delivered),
    ],
)
def test_fulfillment_status_by_elapsed_days(elapsed, expected):
    assert derive_fulfillment_status(NOW - elapsed, now=NOW) == expected


def test_future_creation_time_is_processing():
    assert derive_fulfillment_status(NOW + timedelta(hours=1), now=NOW) == FulfillmentStatus.processing
