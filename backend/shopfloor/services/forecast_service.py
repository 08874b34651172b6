from __future__ import annotations

import numpy as np

from ..models import PricePrediction
from ..errors import StorageError
from . import gateway
from .gateway import DataAccessError


def _round_half_up(value: float) -> int:
    return int(np.floor(value + 0.5))


def history(product_id: int) -> list[PricePrediction]:
    """Imported price/sales rows for a product, oldest first."""
    try:
        return gateway.select(PricePrediction, filters={"product_id": product_id}, order_by="date")
    except DataAccessError as exc:
        raise StorageError(f"Could not load price history: {exc}", failed_step="select_predictions") from exc


def predict(sales: list[int]) -> dict:
    """
    Next-period sales from a straight line fitted over (index, sales).

    confidence is R^2 as a whole percentage; 0 when the series is flat.
    """
    if len(sales) < 2:
        return {"predicted_sales": 0, "confidence": 0}

    y = np.asarray(sales, dtype=float)
    x = np.arange(len(y), dtype=float)
    slope, intercept = np.polyfit(x, y, 1)

    predicted = slope * len(y) + intercept

    ss_total = float(np.sum((y - y.mean()) ** 2))
    if ss_total == 0:
        confidence = 0
    else:
        ss_residual = float(np.sum((y - (slope * x + intercept)) ** 2))
        confidence = _round_half_up((1 - ss_residual / ss_total) * 100)

    return {
        "predicted_sales": max(0, _round_half_up(predicted)),
        "confidence": confidence,
    }


def forecast_sales(product_id: int) -> dict:
    rows = history(product_id)
    result = predict([row.sales_count for row in rows])
    result["product_id"] = product_id
    result["history"] = [row.to_dict() for row in rows]
    return result
