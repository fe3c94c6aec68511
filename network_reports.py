from itertools import accumulate

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from network_engine import CascadeSnapshot, LevelRecord, TierProgression


def count_column(counts):
    """Student counts as display strings; exact counts outgrow the 64-bit columns of a dataframe."""
    return [f"{n:,}" for n in counts]


def split_target_level(progression: TierProgression, level: LevelRecord):
    """Students of ``level`` that fund the next course vs. those earning for the wallet."""
    if progression.is_final:
        return 0, level.students
    target_level = progression.target_level
    if target_level == -1 or level.level < target_level:
        return level.students, 0
    if level.level == target_level:
        funding = min(progression.result.students_at_target_level, level.students)
        return funding, level.students - funding
    return 0, level.students


def levels_frame(progression: TierProgression, paid_only=False) -> pd.DataFrame:
    levels = [l for l in progression.levels if l.is_paid_level or not paid_only]
    splits = [split_target_level(progression, l) for l in levels]
    return pd.DataFrame({
        "Level": [l.level for l in levels],
        "Students": count_column(l.students for l in levels),
        "Cumulative Students": count_column(accumulate(l.students for l in levels)),
        "Percentage (%)": [l.percentage for l in levels],
        "Commission / Student ($)": [l.commission_per_student for l in levels],
        "Level Earnings ($)": [l.level_earnings for l in levels],
        "Cumulative Earnings ($)": [l.cumulative_earnings for l in levels],
        "Funding Students": count_column(s[0] for s in splits),
        "Wallet Students": count_column(s[1] for s in splits),
        "Paid Level": [l.is_paid_level for l in levels],
        "Target Met": [l.target_met for l in levels],
    })


def periods_frame(records, tiers, period_name="Week") -> pd.DataFrame:
    data = {period_name: [r.period for r in records]}
    for tier in tiers:
        data[f"{tier.name} Earnings ($)"] = [r.tier_earnings.get(tier.name, 0.0) for r in records]
    data[f"Total {period_name} Earnings ($)"] = [r.total_period_earnings for r in records]
    data["Cumulative Wallet ($)"] = [r.cumulative_wallet for r in records]
    data["New Students"] = count_column(r.new_students_this_period for r in records)
    data["Total Students"] = count_column(r.total_students_in_first_tier for r in records)
    data["Unlocked Courses"] = [", ".join(r.unlocked_tiers) for r in records]
    return pd.DataFrame(data).set_index(period_name)


def depth_details_frame(snapshot: CascadeSnapshot) -> pd.DataFrame:
    return pd.DataFrame({
        "Progression Step": [d.trigger for d in snapshot.depth_details],
        "Required Depth Added": [d.required_depth for d in snapshot.depth_details],
    })


def first_unlock_periods(records):
    """Period in which each course first shows up as unlocked."""
    unlocks = {}
    for r in records:
        for name in r.unlocked_tiers:
            unlocks.setdefault(name, r.period)
    return unlocks


# -----------------------------
# Charts
# -----------------------------
def plot_wallet_growth(records, period_name="Week"):
    periods = np.array([r.period for r in records], dtype=int)
    wallet = np.array([r.cumulative_wallet for r in records], dtype=float)
    earned = np.array([r.total_period_earnings for r in records], dtype=float)

    fig, ax = plt.subplots(figsize=(10, 4))
    ax.bar(periods, earned, alpha=0.5, color="tab:blue", label=f"Earnings per {period_name}")
    ax.plot(periods, wallet, color="tab:green", linewidth=2, marker="o", label="Cumulative Wallet")

    starting_course = records[0].unlocked_tiers[0] if records else None
    for name, period in first_unlock_periods(records).items():
        if name != starting_course:
            ax.axvline(period, color="purple", linestyle="--", alpha=0.5)
            ax.annotate(f"{name} unlocked", (period, ax.get_ylim()[1] * 0.9), rotation=90,
                        fontsize=8, color="purple", ha="right")

    ax.set_xlabel(period_name)
    ax.set_ylabel("Earnings ($)")
    ax.set_title("💰 Wallet Growth Over Time")
    ax.legend()
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_network_growth(progression: TierProgression):
    levels = progression.levels
    x = np.arange(1, len(levels) + 1)
    splits = [split_target_level(progression, l) for l in levels]
    # floats: deep networks outgrow 64-bit integers
    funding = [float(s[0]) for s in splits]
    wallet = [float(s[1]) for s in splits]

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.bar(x, funding, color="tab:red", label="Funding next course")
    ax.bar(x, wallet, bottom=funding, color="tab:green", label="Wallet earnings")
    if len(levels) > 0 and levels[-1].students > 1000:
        ax.set_yscale("log")
    ax.set_xticks(x)
    ax.set_xlabel("Level")
    ax.set_ylabel("Students")
    ax.set_title(f"🌱 {progression.tier.name} Network")
    ax.legend()
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig
