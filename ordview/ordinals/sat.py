"""Ordinal arithmetic for individual satoshis.

Every value exposed here is a pure function of the sat number. The view
assembler only depends on :func:`describe_sat`; callers may hand it any other
callable with the same shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, List

COIN_VALUE = 100_000_000
SUBSIDY_HALVING_INTERVAL = 210_000
DIFFCHANGE_INTERVAL = 2_016
CYCLE_EPOCHS = 6
FIRST_POST_SUBSIDY_EPOCH = 33
SUPPLY = 2_099_999_997_690_000
LAST_SAT = SUPPLY - 1


class Rarity(Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"


def epoch_subsidy(epoch: int) -> int:
    if epoch < FIRST_POST_SUBSIDY_EPOCH:
        return (50 * COIN_VALUE) >> epoch
    return 0


@lru_cache(maxsize=None)
def _epoch_starting_sats() -> List[int]:
    starts = [0]
    for epoch in range(FIRST_POST_SUBSIDY_EPOCH):
        starts.append(starts[-1] + epoch_subsidy(epoch) * SUBSIDY_HALVING_INTERVAL)
    return starts


def _format_float(value: float) -> str:
    """Shortest round-trip digits in positional notation, no trailing ``.0``."""

    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


@dataclass(frozen=True)
class Degree:
    hour: int
    minute: int
    second: int
    third: int

    def __str__(self) -> str:
        return f"{self.hour}°{self.minute}′{self.second}″{self.third}‴"


@dataclass(frozen=True)
class Sat:
    """A single satoshi identified by its ordinal number."""

    n: int

    def __post_init__(self) -> None:
        if self.n < 0 or self.n > LAST_SAT:
            raise ValueError(f"Sat number out of range: {self.n}")

    @property
    def epoch(self) -> int:
        starts = _epoch_starting_sats()
        for epoch in range(FIRST_POST_SUBSIDY_EPOCH, -1, -1):
            if starts[epoch] <= self.n:
                return epoch
        return 0

    @property
    def epoch_position(self) -> int:
        return self.n - _epoch_starting_sats()[self.epoch]

    @property
    def height(self) -> int:
        epoch = self.epoch
        return epoch * SUBSIDY_HALVING_INTERVAL + self.epoch_position // epoch_subsidy(epoch)

    @property
    def third(self) -> int:
        """Offset of this sat within its block's subsidy."""

        return self.epoch_position % epoch_subsidy(self.epoch)

    @property
    def cycle(self) -> int:
        return self.epoch // CYCLE_EPOCHS

    @property
    def period(self) -> int:
        return self.height // DIFFCHANGE_INTERVAL

    @property
    def degree(self) -> Degree:
        height = self.height
        return Degree(
            hour=height // (CYCLE_EPOCHS * SUBSIDY_HALVING_INTERVAL),
            minute=height % SUBSIDY_HALVING_INTERVAL,
            second=height % DIFFCHANGE_INTERVAL,
            third=self.third,
        )

    @property
    def decimal(self) -> str:
        return f"{self.height}.{self.third}"

    @property
    def percentile(self) -> str:
        return f"{_format_float(self.n / LAST_SAT * 100.0)}%"

    @property
    def name(self) -> str:
        x = SUPPLY - self.n
        letters: List[str] = []
        while x > 0:
            letters.append("abcdefghijklmnopqrstuvwxyz"[(x - 1) % 26])
            x = (x - 1) // 26
        return "".join(reversed(letters))

    @property
    def rarity(self) -> Rarity:
        degree = self.degree
        if degree.hour == 0 and degree.minute == 0 and degree.second == 0 and degree.third == 0:
            return Rarity.MYTHIC
        if degree.minute == 0 and degree.second == 0 and degree.third == 0:
            return Rarity.LEGENDARY
        if degree.minute == 0 and degree.third == 0:
            return Rarity.EPIC
        if degree.second == 0 and degree.third == 0:
            return Rarity.RARE
        if degree.third == 0:
            return Rarity.UNCOMMON
        return Rarity.COMMON


@dataclass(frozen=True)
class SatView:
    """Rarity and provenance record attached to an inscription view."""

    number: int
    decimal: str
    degree: str
    percentile: str
    name: str
    cycle: int
    epoch: int
    period: int
    block: int
    offset: int
    rarity: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "decimal": self.decimal,
            "degree": self.degree,
            "percentile": self.percentile,
            "name": self.name,
            "cycle": self.cycle,
            "epoch": self.epoch,
            "period": self.period,
            "block": self.block,
            "offset": self.offset,
            "rarity": self.rarity,
        }


def describe_sat(number: int) -> SatView:
    sat = Sat(number)
    return SatView(
        number=sat.n,
        decimal=sat.decimal,
        degree=str(sat.degree),
        percentile=sat.percentile,
        name=sat.name,
        cycle=sat.cycle,
        epoch=sat.epoch,
        period=sat.period,
        block=sat.height,
        offset=sat.third,
        rarity=sat.rarity.value,
    )


__all__ = ["Degree", "Rarity", "Sat", "SatView", "describe_sat"]
