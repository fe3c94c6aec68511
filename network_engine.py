"""
Network progression and commission engine.

Every function here is a pure function of its inputs. A tier's network grows by
``multiplier ** level`` students per level, each paid level earns a percentage of
the tier's price per student, and part of that commission is reserved until the
next tier's price is funded.
"""

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple

from network_settings import (
    NetworkSettings,
    Tier,
    effective_percentages,
    percentage_total,
    percentage_warning,
)

logger = logging.getLogger(__name__)

CALCULATION_LEVEL_LIMIT = 40  # hard cap on levels searched for a target


@dataclass(frozen=True)
class LevelRecord:
    level: int
    students: int
    percentage: float
    commission_per_student: float
    level_earnings: float
    cumulative_earnings: float
    is_paid_level: bool
    target_met: bool


@dataclass(frozen=True)
class NetworkResult:
    levels: Tuple[LevelRecord, ...]
    target_level: int
    students_at_target_level: int
    total_students_needed: int


@dataclass(frozen=True)
class TierProgression:
    tier_index: int
    tier: Tier
    target_price: Optional[float]
    result: NetworkResult
    wallet_earnings: float
    is_final: bool
    display_depth: int

    @property
    def levels(self):
        return self.result.levels

    @property
    def target_level(self):
        return self.result.target_level

    @property
    def target_met(self):
        return self.result.total_students_needed > 0

    @property
    def active_sponsor_count(self):
        return 1

    @property
    def total_network_size(self):
        return sum(level.students for level in self.result.levels)

    @property
    def total_paid_earnings(self):
        return sum(level.level_earnings for level in self.result.levels if level.is_paid_level)


@dataclass(frozen=True)
class DepthDetail:
    tier_name: str
    required_depth: int
    trigger: str


@dataclass(frozen=True)
class CascadeSnapshot:
    total_network_size: int
    total_required_depth: int
    depth_details: Tuple[DepthDetail, ...]


@dataclass(frozen=True)
class PeriodRecord:
    period: int
    tier_earnings: Mapping[str, float]
    total_period_earnings: float
    cumulative_wallet: float
    unlocked_tiers: Tuple[str, ...]
    new_students_this_period: int
    total_students_in_first_tier: int


@dataclass(frozen=True)
class PipelineResult:
    effective_percentages: Tuple[float, ...]
    percentage_total: float
    percentage_warning: bool
    visualization_depths: Tuple[int, ...]
    progressions: Tuple[TierProgression, ...]
    snapshot: CascadeSnapshot
    periods: Tuple[PeriodRecord, ...]


# -----------------------------
# Level generation and target resolution
# -----------------------------
def level_percentage(percentages: Sequence[float], level: int, payout_levels: int) -> float:
    if level > payout_levels or level > len(percentages):
        return 0
    return percentages[level - 1]


def compute_network(
    price: float,
    target_amount: float,
    percentages: Sequence[float],
    multiplier: int,
    payout_levels: int,
    depth: int,
    reserve_percent: float,
) -> NetworkResult:
    levels: List[LevelRecord] = []
    reserve_ratio = reserve_percent / 100
    cumulative = 0.0
    accumulated_reserved = 0.0
    target_found = False
    target_level = -1
    students_at_target = 0

    for level in range(1, depth + 1):
        students = multiplier ** level
        percentage = level_percentage(percentages, level, payout_levels)
        commission_per_student = price * percentage / 100
        level_earnings = students * commission_per_student
        reserved_per_student = commission_per_student * reserve_ratio
        level_reserved = level_earnings * reserve_ratio

        if not target_found and reserved_per_student > 0 and target_amount > 0:
            remaining = target_amount - accumulated_reserved
            if remaining <= level_reserved:
                target_found = True
                target_level = level
                # round up so the target is never under-funded
                students_at_target = math.ceil(remaining / reserved_per_student)

        accumulated_reserved += level_reserved
        cumulative += level_earnings
        levels.append(LevelRecord(
            level=level,
            students=students,
            percentage=percentage,
            commission_per_student=commission_per_student,
            level_earnings=level_earnings,
            cumulative_earnings=cumulative,
            is_paid_level=level <= payout_levels,
            target_met=target_amount > 0 and accumulated_reserved >= target_amount,
        ))

    total_needed = 0
    if target_level > 0:
        total_needed = sum(rec.students for rec in levels[:target_level - 1]) + students_at_target
        logger.debug(
            "Target %.2f met at level %d after %d students (price %.2f)",
            target_amount, target_level, total_needed, price,
        )

    return NetworkResult(
        levels=tuple(levels),
        target_level=target_level,
        students_at_target_level=students_at_target,
        total_students_needed=total_needed,
    )


# -----------------------------
# Wallet allocation
# -----------------------------
def allocate_wallet(result: NetworkResult, target_price: Optional[float], reserve_percent: float) -> float:
    """Commission left for the wallet once the next tier's price is reserved.

    The level that crosses the target is split once: commission up to the
    threshold keeps its normal wallet share, everything above it goes to the
    wallet in full.
    """
    target = target_price or 0
    reserve_ratio = reserve_percent / 100
    wallet = 0.0
    accumulated_reserved = 0.0

    for level in result.levels:
        if not level.is_paid_level:
            continue
        commission = level.level_earnings

        if target > 0 and accumulated_reserved < target:
            remaining = target - accumulated_reserved
            potential = commission * reserve_ratio
            if reserve_ratio > 0 and remaining < potential:
                to_target = remaining / reserve_ratio
                wallet += to_target * (1 - reserve_ratio)
                wallet += commission - to_target
                accumulated_reserved = target
            else:
                wallet += commission * (1 - reserve_ratio)
                accumulated_reserved += potential
        else:
            wallet += commission

    return max(0.0, wallet)


def build_progressions(
    tiers: Sequence[Tier],
    settings: NetworkSettings,
    percentages: Sequence[float],
    visualization_depths: Sequence[int],
) -> Tuple[TierProgression, ...]:
    states = []
    for i, tier in enumerate(tiers):
        next_price = tiers[i + 1].price if i < len(tiers) - 1 else 0
        target_price = next_price if next_price > 0 else None
        is_final = target_price is None
        depth = visualization_depths[i] if i < len(visualization_depths) and visualization_depths[i] > 0 else settings.payout_levels

        result = compute_network(
            tier.price,
            0 if is_final else target_price,
            percentages,
            settings.multiplier,
            settings.payout_levels,
            depth,
            settings.reserve_percentage,
        )
        states.append(TierProgression(
            tier_index=i,
            tier=tier,
            target_price=target_price,
            result=result,
            wallet_earnings=allocate_wallet(result, target_price, settings.reserve_percentage),
            is_final=is_final,
            display_depth=depth,
        ))
    return tuple(states)


# -----------------------------
# Cascade depth planning
# -----------------------------
def cascade_step_depths(tiers: Sequence[Tier], settings: NetworkSettings, percentages: Sequence[float]) -> Tuple[int, ...]:
    """Levels each tier needs on its own: full payout for the last tier,
    the target level for the next tier's price otherwise (0 if never reached)."""
    depths = [0] * len(tiers)
    for i in range(len(tiers) - 1, -1, -1):
        if i == len(tiers) - 1:
            depths[i] = settings.payout_levels
            continue
        result = compute_network(
            tiers[i].price,
            tiers[i + 1].price,
            percentages,
            settings.multiplier,
            settings.payout_levels,
            CALCULATION_LEVEL_LIMIT,
            settings.reserve_percentage,
        )
        if result.target_level > 0:
            depths[i] = result.target_level
        else:
            logger.warning(
                "%s cannot fund %s within %d levels",
                tiers[i].name, tiers[i + 1].name, CALCULATION_LEVEL_LIMIT,
            )
    return tuple(depths)


def cascade_visualization_depths(tiers: Sequence[Tier], settings: NetworkSettings, percentages: Sequence[float]) -> Tuple[int, ...]:
    """Depth of each tier's tree that reveals the whole downstream graduation chain."""
    steps = cascade_step_depths(tiers, settings, percentages)
    depths = [0] * len(steps)
    cumulative = 0
    for i in range(len(steps) - 1, -1, -1):
        cumulative += steps[i]
        depths[i] = cumulative
    return tuple(depths)


def cascade_snapshot(tiers: Sequence[Tier], settings: NetworkSettings, percentages: Sequence[float]) -> CascadeSnapshot:
    if not tiers:
        return CascadeSnapshot(total_network_size=0, total_required_depth=0, depth_details=())

    steps = cascade_step_depths(tiers, settings, percentages)
    details = []
    for i, tier in enumerate(tiers):
        if i == len(tiers) - 1:
            trigger = f"For full payout in {tier.name}"
        else:
            trigger = f"To graduate from {tier.name} to {tiers[i + 1].name}"
        details.append(DepthDetail(tier_name=tier.name, required_depth=steps[i], trigger=trigger))

    # flat sum: the tiers' requirements stack into one chain of levels
    total_depth = sum(steps)
    total_size = sum(settings.multiplier ** d for d in range(1, total_depth + 1))
    return CascadeSnapshot(
        total_network_size=total_size,
        total_required_depth=total_depth,
        depth_details=tuple(details),
    )


# -----------------------------
# Period simulation
# -----------------------------
def simulate_periods(tiers: Sequence[Tier], settings: NetworkSettings, percentages: Sequence[float]) -> Tuple[PeriodRecord, ...]:
    if not tiers:
        return ()

    unlocked = [False] * len(tiers)
    unlocked[0] = True
    depths = [0] * len(tiers)
    savings = [0.0] * len(tiers)
    cumulative_wallet = 0.0
    total_students = 0
    reserve_ratio = settings.reserve_ratio
    last = len(tiers) - 1
    series = []

    for period in range(1, settings.number_of_periods + 1):
        earnings = {}
        total_period = 0.0
        new_students = 0

        for i, tier in enumerate(tiers):
            if not unlocked[i]:
                earnings[tier.name] = 0.0
                continue

            depths[i] += 1
            new_level = depths[i]
            students = settings.multiplier ** new_level
            if i == 0:
                new_students = students
                total_students += students

            percentage = level_percentage(percentages, new_level, settings.payout_levels)
            commission = students * (tier.price * percentage / 100)
            earnings[tier.name] = commission
            total_period += commission

            next_unlocked = i == last or unlocked[i + 1]
            if not next_unlocked:
                savings[i] += commission * reserve_ratio
                cumulative_wallet += commission * (1 - reserve_ratio)
            else:
                cumulative_wallet += commission

        # graduations take effect from the next period
        for i in range(last):
            if unlocked[i] and not unlocked[i + 1] and savings[i] >= tiers[i + 1].price:
                unlocked[i + 1] = True
                logger.debug("%s unlocked after %s %d", tiers[i + 1].name, settings.period_name, period)

        series.append(PeriodRecord(
            period=period,
            tier_earnings=MappingProxyType(earnings),
            total_period_earnings=total_period,
            cumulative_wallet=cumulative_wallet,
            unlocked_tiers=tuple(t.name for t, flag in zip(tiers, unlocked) if flag),
            new_students_this_period=new_students,
            total_students_in_first_tier=total_students,
        ))

    return tuple(series)


# -----------------------------
# Pipeline
# -----------------------------
@lru_cache(maxsize=128)
def cached_pipeline(tiers: Tuple[Tier, ...], settings: NetworkSettings) -> PipelineResult:
    logger.debug("Recomputing network pipeline for %d tiers", len(tiers))
    percentages = effective_percentages(settings)
    depths = cascade_visualization_depths(tiers, settings, percentages)
    return PipelineResult(
        effective_percentages=percentages,
        percentage_total=percentage_total(percentages),
        percentage_warning=percentage_warning(percentages),
        visualization_depths=depths,
        progressions=build_progressions(tiers, settings, percentages, depths),
        snapshot=cascade_snapshot(tiers, settings, percentages),
        periods=simulate_periods(tiers, settings, percentages),
    )


def run_pipeline(tiers: Sequence[Tier], settings: NetworkSettings) -> PipelineResult:
    """Recompute everything for ``tiers`` and ``settings``; any ordered sequence of tiers is accepted."""
    return cached_pipeline(tuple(tiers), settings)
