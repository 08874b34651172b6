from datetime import date

import pytest

from shopfloor.services import vat_service


def test_applicable_rate_is_latest_not_after_date(db_session):
    vat_service.add_rate(date(2014, 1, 1), 2000)
    vat_service.add_rate(date(2024, 1, 1), 2100)
    vat_service.add_rate(date(2030, 1, 1), 2500)

    assert vat_service.applicable_rate(date(2013, 12, 31)) is None
    assert vat_service.applicable_rate(date(2014, 1, 1)).rate_bps == 2000
    assert vat_service.applicable_rate(date(2023, 12, 31)).rate_bps == 2000
    assert vat_service.applicable_rate(date(2026, 6, 1)).rate_bps == 2100


def test_list_rates_newest_first(db_session):
    vat_service.add_rate(date(2014, 1, 1), 2000)
    vat_service.add_rate(date(2024, 1, 1), 2100)

    assert [r.rate_bps for r in vat_service.list_rates()] == [2100, 2000]


def test_update_and_delete_rate(db_session):
    rate = vat_service.add_rate(date(2014, 1, 1), 2000)

    assert vat_service.update_rate(rate.id, {"rate_bps": 550}).rate_bps == 550
    assert vat_service.delete_rate(rate.id) is True
    assert vat_service.delete_rate(rate.id) is False
    assert vat_service.update_rate(rate.id, {"rate_bps": 1}) is None


@pytest.mark.parametrize(
    "price, bps, vat",
    [(1000, 2000, 200), (999, 550, 55), (1, 2000, 0), (3, 2000, 1), (1000, None, 0)],
)
def test_vat_amount_rounds_half_up(price, bps, vat):
    assert vat_service.vat_amount(price, bps) == vat


def test_price_with_vat_and_vat_included():
    assert vat_service.price_with_vat(1000, 2000) == 1200
    assert vat_service.vat_included(1200, 2000) == 200
    assert vat_service.vat_included(1200, None) == 0
