"""Tests for expiry urgency helpers."""

from __future__ import annotations

from datetime import date

import pytest

from dispensa.expiry import (
    days_until_expiry,
    expiry_label,
    expiry_level,
    sort_by_expiry,
    summarize,
)
from dispensa.models.product import Product

TODAY = date(2024, 1, 15)


def _product(name: str, expiry: str, storage: str = "frigo") -> Product:
    return Product(name=name, expiry_date=expiry, storage_type=storage)


@pytest.mark.parametrize(
    ("expiry", "days", "level", "label"),
    [
        (date(2024, 1, 14), -1, "expired", "Scaduto"),
        (date(2024, 1, 15), 0, "critical", "Scade oggi"),
        (date(2024, 1, 16), 1, "critical", "Scade domani"),
        (date(2024, 1, 18), 3, "critical", "3 giorni"),
        (date(2024, 1, 19), 4, "warning", "4 giorni"),
        (date(2024, 1, 22), 7, "warning", "7 giorni"),
        (date(2024, 1, 23), 8, "ok", "8 giorni"),
    ],
)
def test_levels_and_labels(expiry, days, level, label):
    assert days_until_expiry(expiry, TODAY) == days
    assert expiry_level(expiry, TODAY) == level
    assert expiry_label(expiry, TODAY) == label


def test_sort_puts_expired_first():
    products = [
        _product("A", "2024-01-01"),
        _product("B", "2024-03-01"),
        _product("C", "2023-12-01"),
    ]

    ordered = sort_by_expiry(products, today=date(2024, 1, 2))

    assert [product.name for product in ordered] == ["C", "A", "B"]


def test_sort_is_stable_for_same_day():
    products = [
        _product("primo", "2024-02-01"),
        _product("secondo", "2024-01-20"),
        _product("terzo", "2024-02-01"),
    ]

    ordered = sort_by_expiry(products, today=TODAY)

    assert [product.name for product in ordered] == ["secondo", "primo", "terzo"]


def test_summarize_counts_storage_and_urgency():
    products = [
        _product("Latte", "2024-01-10"),
        _product("Yogurt", "2024-01-16"),
        _product("Pasta", "2025-01-01", storage="dispensa"),
    ]

    summary = summarize(products, today=TODAY)

    assert summary.total == 3
    assert summary.fridge == 2
    assert summary.pantry == 1
    assert summary.expired == 1
    assert summary.expiring_soon == 1
