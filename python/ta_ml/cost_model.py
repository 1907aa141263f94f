"""Commission model for the backtest simulator."""

from __future__ import annotations

from .config import CostConfig


class CommissionCostModel:
    """Costs:
    - commission: a flat rate on the traded value, charged on entry and on exit
    """

    def __init__(self, cfg: CostConfig):
        self.cfg = cfg

    def transaction_cost(self, trade_value: float) -> float:
        """Cost of one side (entry or exit) of a trade."""
        return float(trade_value) * float(self.cfg.commission_rate)

    def round_trip_cost(self, trade_value: float) -> float:
        """Entry + exit commission, both charged when the trade closes."""
        return 2.0 * self.transaction_cost(trade_value)
