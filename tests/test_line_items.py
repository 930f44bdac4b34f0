"""Tests for cart → gateway line item formatting."""
from decimal import Decimal

import pytest

from storefront.checkout.line_items import (
    format_line_items,
    parse_cart,
    to_minor_units,
    validate_image_url,
)
from storefront.shared.errors import InvalidCartError


class TestImageUrls:
    def test_relative_url_never_reaches_gateway(self):
        [item] = format_line_items(
            [{"name": "Soap", "price": 10, "images": ["images/local.png"]}], "inr"
        )
        assert item.images == []

    def test_absolute_https_url_kept_verbatim(self):
        [item] = format_line_items(
            [{"name": "Soap", "price": 10, "images": ["https://cdn.example.com/a.png"]}], "inr"
        )
        assert item.images == ["https://cdn.example.com/a.png"]

    def test_only_first_image_is_used(self):
        [item] = format_line_items(
            [
                {
                    "name": "Soap",
                    "price": 10,
                    "images": ["https://cdn.example.com/a.png", "https://cdn.example.com/b.png"],
                }
            ],
            "inr",
        )
        assert item.images == ["https://cdn.example.com/a.png"]

    def test_image_url_alias(self):
        [item] = format_line_items(
            [{"name": "Soap", "price": 10, "imageURL": "http://cdn.example.com/c.jpg"}], "inr"
        )
        assert item.images == ["http://cdn.example.com/c.jpg"]

    @pytest.mark.parametrize(
        "url",
        ["", None, "/static/a.png", "ftp://cdn.example.com/a.png", "https://", "https://bad host/a.png"],
    )
    def test_rejected_urls(self, url):
        assert validate_image_url(url) is None


class TestFormatting:
    def test_name_falls_back_to_product(self):
        [item] = format_line_items([{"name": "  ", "price": 5}], "inr")
        assert item.name == "Product"

    def test_blank_description_is_omitted(self):
        [item] = format_line_items([{"name": "Soap", "price": 5, "description": "   "}], "inr")
        assert item.description is None

    def test_description_is_trimmed(self):
        [item] = format_line_items([{"name": "Soap", "price": 5, "description": " Neem soap "}], "inr")
        assert item.description == "Neem soap"

    def test_quantity_defaults_to_one(self):
        [item] = format_line_items([{"name": "Soap", "price": 5}], "inr")
        assert item.quantity == 1

    def test_unit_amount_rounds_to_minor_units(self):
        [a, b] = format_line_items(
            [{"name": "A", "price": "19.995", "quantity": 2}, {"name": "B", "price": "3"}], "inr"
        )
        assert a.unit_amount == 2000
        assert a.quantity == 2
        assert b.unit_amount == 300

    def test_currency_is_applied(self):
        [item] = format_line_items([{"name": "Soap", "price": 5}], "usd")
        assert item.currency == "usd"

    def test_to_minor_units_half_up(self):
        assert to_minor_units(Decimal("0.005")) == 1
        assert to_minor_units(Decimal("109.97")) == 10997


class TestInvalidCarts:
    @pytest.mark.parametrize("raw", [None, [], {}, "items", 3])
    def test_empty_or_non_list_cart(self, raw):
        with pytest.raises(InvalidCartError):
            parse_cart(raw)

    def test_item_without_price(self):
        with pytest.raises(InvalidCartError) as excinfo:
            parse_cart([{"name": "Soap"}])
        assert excinfo.value.status_code == 400

    def test_negative_price(self):
        with pytest.raises(InvalidCartError):
            parse_cart([{"name": "Soap", "price": -1}])

    def test_negative_quantity(self):
        with pytest.raises(InvalidCartError):
            parse_cart([{"name": "Soap", "price": 1, "quantity": -2}])
