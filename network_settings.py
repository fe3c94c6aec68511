import logging
import math
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

# -----------------------------
# Defaults
# -----------------------------
DEFAULT_MULTIPLIER = 3
DEFAULT_PAYOUT_LEVELS = 6
DEFAULT_PERCENTAGE = 15  # fill value for custom levels that have no entry yet
DEFAULT_UNIFORM_PERCENTAGE = 15
DEFAULT_RESERVE_PERCENTAGE = 100
DEFAULT_NUMBER_OF_PERIODS = 20
DEFAULT_PERIOD_NAME = "Week"
DEFAULT_CUSTOM_LEVELS = 10

PERIOD_NAMES = ("Hour", "Day", "Week", "Month", "Year")

MULTIPLIER_RANGE = (2, 10)
PAYOUT_LEVELS_RANGE = (1, 20)
RESERVE_RANGE = (0, 100)
PERIODS_RANGE = (1, 100)
CUSTOM_PERCENTAGE_RANGE = (0, 50)


@dataclass(frozen=True)
class Tier:
    name: str
    price: float


DEFAULT_TIERS = (
    Tier("Course 1", 15),
    Tier("Course 2", 100),
    Tier("Course 3", 500),
    Tier("Course 4", 2500),
    Tier("Course 5", 7500),
    Tier("Course 6", 32500),
)


# -----------------------------
# Helpers
# -----------------------------
def clamp(x, a=0.0, b=1.0):
    return max(a, min(b, x))


def coerce_int(value, default: int) -> int:
    """Parse a raw form value; empty, invalid or zero entries fall back to ``default``."""
    try:
        parsed = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return parsed or default


@dataclass(frozen=True)
class NetworkSettings:
    multiplier: int = DEFAULT_MULTIPLIER
    percentages: Tuple[float, ...] = field(default=(DEFAULT_PERCENTAGE,) * DEFAULT_CUSTOM_LEVELS)
    use_uniform_percentage: bool = True
    uniform_percentage: float = DEFAULT_UNIFORM_PERCENTAGE
    payout_levels: int = DEFAULT_PAYOUT_LEVELS
    reserve_percentage: int = DEFAULT_RESERVE_PERCENTAGE
    number_of_periods: int = DEFAULT_NUMBER_OF_PERIODS
    period_name: str = DEFAULT_PERIOD_NAME

    def __post_init__(self):
        # lists from the UI would make the record unhashable
        object.__setattr__(self, "percentages", tuple(self.percentages))

    @property
    def reserve_ratio(self) -> float:
        return self.reserve_percentage / 100

    def with_changes(self, **changes) -> "NetworkSettings":
        """Return a copy with ``changes`` applied; the original record is untouched."""
        return replace(self, **changes)

    @classmethod
    def from_inputs(
        cls,
        multiplier=DEFAULT_MULTIPLIER,
        percentages: Optional[Sequence] = None,
        use_uniform_percentage=True,
        uniform_percentage=DEFAULT_UNIFORM_PERCENTAGE,
        payout_levels=DEFAULT_PAYOUT_LEVELS,
        reserve_percentage=DEFAULT_RESERVE_PERCENTAGE,
        number_of_periods=DEFAULT_NUMBER_OF_PERIODS,
        period_name=DEFAULT_PERIOD_NAME,
    ) -> "NetworkSettings":
        """Build settings from raw form values, defaulting and clamping as the form does."""
        if percentages is None:
            percentages = (DEFAULT_PERCENTAGE,) * DEFAULT_CUSTOM_LEVELS
        custom = tuple(
            clamp(coerce_int(p, 0), *CUSTOM_PERCENTAGE_RANGE) for p in percentages
        )
        reserve = coerce_int(reserve_percentage, 0)
        if period_name not in PERIOD_NAMES:
            logger.debug("Unknown period name %r, using %s", period_name, DEFAULT_PERIOD_NAME)
            period_name = DEFAULT_PERIOD_NAME
        return cls(
            multiplier=clamp(coerce_int(multiplier, DEFAULT_MULTIPLIER), *MULTIPLIER_RANGE),
            percentages=custom,
            use_uniform_percentage=bool(use_uniform_percentage),
            uniform_percentage=max(0, coerce_int(uniform_percentage, DEFAULT_UNIFORM_PERCENTAGE)),
            payout_levels=clamp(coerce_int(payout_levels, DEFAULT_PAYOUT_LEVELS), *PAYOUT_LEVELS_RANGE),
            reserve_percentage=clamp(reserve, *RESERVE_RANGE),
            number_of_periods=clamp(coerce_int(number_of_periods, DEFAULT_NUMBER_OF_PERIODS), *PERIODS_RANGE),
            period_name=period_name,
        )


# -----------------------------
# Percentages
# -----------------------------
def effective_percentages(settings: NetworkSettings) -> Tuple[float, ...]:
    levels = max(0, settings.payout_levels)
    if settings.use_uniform_percentage:
        return (settings.uniform_percentage,) * levels
    custom = list(settings.percentages)
    while len(custom) < levels:
        custom.append(DEFAULT_PERCENTAGE)
    return tuple(custom[:levels])


def percentage_total(percentages: Sequence[float]) -> float:
    return sum(percentages)


def percentage_warning(percentages: Sequence[float]) -> bool:
    return percentage_total(percentages) > 100


def available_percentage(percentages: Sequence[float]) -> float:
    return 100 - percentage_total(percentages)


def max_uniform_percentage(payout_levels: int) -> int:
    if payout_levels <= 0:
        return 100
    return math.floor(100 / payout_levels)


# -----------------------------
# Tier list edits
# -----------------------------
def next_tier_name(tiers: Sequence[Tier]) -> str:
    """First ``Course N`` from ``len(tiers) + 1`` upward that no course already uses."""
    taken = {t.name for t in tiers}
    number = len(tiers) + 1
    while f"Course {number}" in taken:
        number += 1
    return f"Course {number}"


def add_tier(tiers: Sequence[Tier]) -> Tuple[Tier, ...]:
    """Append a uniquely named course priced at double the last course."""
    last_price = tiers[-1].price if tiers else DEFAULT_TIERS[0].price
    return tuple(tiers) + (Tier(next_tier_name(tiers), last_price * 2),)


def remove_tier(tiers: Sequence[Tier], index: int) -> Tuple[Tier, ...]:
    # at least two courses are always kept
    if len(tiers) <= 2 or not 0 <= index < len(tiers):
        return tuple(tiers)
    return tuple(t for i, t in enumerate(tiers) if i != index)


def update_tier_price(tiers: Sequence[Tier], index: int, price) -> Tuple[Tier, ...]:
    updated = list(tiers)
    updated[index] = replace(updated[index], price=max(0, coerce_int(price, 0)))
    return tuple(updated)
