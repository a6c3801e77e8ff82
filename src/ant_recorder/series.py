"""Chart-ready projections of the block rate model."""

from __future__ import annotations

from itertools import islice
from typing import Iterator

from .rate_model import BlockModel, BlockRates

# Reference line from (0, 0) to (1, 1) drawn beside the in/out scatter.
ONE_TO_ONE: tuple[tuple[float, float], ...] = ((0.0, 0.0), (1.0, 1.0))


class RateSeries:
    """Read-only view over a :class:`BlockModel` indexed by block position.

    Every query walks the block rates again; block counts stay in the hundreds.
    """

    title = "Ant rates"

    def __init__(self, model: BlockModel) -> None:
        self._model = model

    def __len__(self) -> int:
        return self._model.block_count

    def __iter__(self) -> Iterator[BlockRates]:
        return self._model.blocks()

    def sample(self, index: int) -> BlockRates:
        """Return the rates of block ``index`` for time-axis charts."""
        if index < 0:
            raise IndexError(f"block index out of range: {index}")
        for rates in islice(self._model.blocks(), index, index + 1):
            return rates
        raise IndexError(f"block index out of range: {index}")

    def point(self, index: int) -> tuple[float, float]:
        """Return ``(in_rate, out_rate)`` of block ``index`` for scatter charts."""
        rates = self.sample(index)
        return rates.in_rate, rates.out_rate

    def points(self) -> list[tuple[float, float]]:
        return [(rates.in_rate, rates.out_rate) for rates in self._model.blocks()]

    def samples(self) -> list[BlockRates]:
        return list(self._model.blocks())
