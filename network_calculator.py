import logging

import matplotlib.pyplot as plt
import streamlit as st

from network_engine import cached_pipeline, run_pipeline
from network_reports import (
    depth_details_frame,
    first_unlock_periods,
    levels_frame,
    periods_frame,
    plot_network_growth,
    plot_wallet_growth,
)
from network_settings import (
    DEFAULT_CUSTOM_LEVELS,
    DEFAULT_MULTIPLIER,
    DEFAULT_NUMBER_OF_PERIODS,
    DEFAULT_PAYOUT_LEVELS,
    DEFAULT_PERCENTAGE,
    DEFAULT_PERIOD_NAME,
    DEFAULT_RESERVE_PERCENTAGE,
    DEFAULT_TIERS,
    DEFAULT_UNIFORM_PERCENTAGE,
    PERIOD_NAMES,
    NetworkSettings,
    add_tier,
    available_percentage,
    max_uniform_percentage,
    remove_tier,
    update_tier_price,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

st.set_page_config(page_title="Education Platform Network Calculator", layout="wide")

st.title("Education Platform Network Calculator")
st.caption("Models how a sponsor's student network funds each next course and what is left for the wallet.")

if "tiers" not in st.session_state:
    st.session_state.tiers = DEFAULT_TIERS


def _reset_price_inputs():
    for key in list(st.session_state.keys()):
        if str(key).startswith("price_"):
            del st.session_state[key]


def _add_course():
    st.session_state.tiers = add_tier(st.session_state.tiers)


def _remove_course(index):
    st.session_state.tiers = remove_tier(st.session_state.tiers, index)
    _reset_price_inputs()


# -----------------------------
# Sidebar: configuration
# -----------------------------
with st.sidebar:
    st.header("Configuration")

    st.subheader("📚 Course Prices")
    tiers = st.session_state.tiers
    for i, tier in enumerate(tiers):
        col_price, col_remove = st.columns([4, 1])
        with col_price:
            price = st.number_input(f"💵 {tier.name} Price ($)", min_value=0, value=int(tier.price), step=5, key=f"price_{i}", help="Price a student pays for this course. The next course's price is the target reserved from this course's commissions.")
        with col_remove:
            if len(tiers) > 2:
                st.button("✕", key=f"remove_{i}", on_click=_remove_course, args=(i,), help="Remove course")
        tiers = update_tier_price(tiers, i, price)
    st.session_state.tiers = tiers
    st.button("➕ Add Course", key="add_course", on_click=_add_course, help="Adds a course priced at double the last one.")

    st.markdown("---")
    st.subheader("🌱 Network")
    multiplier = st.number_input("🔁 Network Multiplier", min_value=2, max_value=10, value=DEFAULT_MULTIPLIER, step=1, key="multiplier", help="How many students each participant recruits. Level L holds multiplier^L students.")
    payout_levels = st.number_input("🏷️ Payout Levels", min_value=1, max_value=20, value=DEFAULT_PAYOUT_LEVELS, step=1, key="payout_levels", help="How many levels receive commissions. Deeper levels still grow but earn nothing.")
    reserve_percentage = st.slider("🎯 Target Reserve (%)", 0, 100, DEFAULT_RESERVE_PERCENTAGE, 5, key="reserve_percentage", help="% of pre-target earnings held to fund the next course.")

    st.markdown("---")
    st.subheader("💳 Commission Percentages")
    use_uniform = st.checkbox("Uniform %", value=True, key="use_uniform", help="Pay the same percentage on every payout level.")
    uniform_percentage = DEFAULT_UNIFORM_PERCENTAGE
    custom_percentages = [DEFAULT_PERCENTAGE] * DEFAULT_CUSTOM_LEVELS
    if use_uniform:
        uniform_percentage = st.number_input("📊 Uniform Percentage (%)", min_value=0, max_value=100, value=DEFAULT_UNIFORM_PERCENTAGE, step=1, key="uniform_percentage")
        st.caption(f"Max: {max_uniform_percentage(int(payout_levels))}% for {int(payout_levels)} levels")
    else:
        pct_cols = st.columns(3)
        custom_percentages = []
        for level in range(1, int(payout_levels) + 1):
            with pct_cols[(level - 1) % 3]:
                custom_percentages.append(st.number_input(f"L{level:02d} (%)", min_value=0, max_value=50, value=DEFAULT_PERCENTAGE, step=1, key=f"pct_{level}"))

    st.markdown("---")
    st.subheader("⏱️ Time Simulation")
    period_name = st.selectbox("📅 Time Period Name", PERIOD_NAMES, index=PERIOD_NAMES.index(DEFAULT_PERIOD_NAME), key="period_name", help="The unit of time for each step in the simulation.")
    number_of_periods = st.number_input(f"🔢 Number of {period_name}s", min_value=1, max_value=100, value=DEFAULT_NUMBER_OF_PERIODS, step=1, key="number_of_periods", help=f"How many {period_name.lower()}s to project forward.")

settings = NetworkSettings.from_inputs(
    multiplier=multiplier,
    percentages=custom_percentages,
    use_uniform_percentage=use_uniform,
    uniform_percentage=uniform_percentage,
    payout_levels=payout_levels,
    reserve_percentage=reserve_percentage,
    number_of_periods=number_of_periods,
    period_name=period_name,
)
result = run_pipeline(tiers, settings)
logger.debug("Pipeline cache: %s", cached_pipeline.cache_info())

# -----------------------------
# Validation
# -----------------------------
with st.sidebar:
    total_pct = result.percentage_total
    if result.percentage_warning:
        st.error(f"⚠️ **Percentage Warning**: Total {total_pct:g}% exceeds 100%. Only the first {settings.payout_levels} levels get paid.")
    else:
        st.info(f"Total: {total_pct:g}% (Available: {available_percentage(result.effective_percentages):g}%) - {settings.payout_levels} payout levels")

zero_priced = [t.name for t in tiers if t.price <= 0]
if zero_priced:
    st.warning(f"⚠️ **Price Warning**: {', '.join(zero_priced)} has no price. A course without a price earns nothing and cannot be a target.")

unreachable = [p for p in result.progressions if not p.is_final and p.target_level == -1]
for p in unreachable:
    st.warning(f"⚠️ **Unreachable Target**: {p.tier.name} never reserves ${p.target_price:,.0f} for the next course with these settings.")

# -----------------------------
# Network overview
# -----------------------------
st.header("🌳 Network Overview")
overview_cols = st.columns(len(result.progressions))
for col, progression in zip(overview_cols, result.progressions):
    with col:
        st.markdown(f"**{progression.tier.name}** (${progression.tier.price:,.0f})")
        if progression.is_final:
            st.caption("Final Course - no target needed")
        else:
            st.caption(f"Target: ${progression.target_price:,.0f}")
            st.caption(f"Students to target: {progression.result.total_students_needed:,}")
        st.caption(f"Depth shown: {progression.display_depth} levels")

# -----------------------------
# Tabs
# -----------------------------
tab_labels = [t.name for t in tiers] + ["Time Simulation", "Full Cascade Snapshot"]
tabs = st.tabs(tab_labels)

for tab, progression in zip(tabs, result.progressions):
    with tab:
        st.header(f"📘 {progression.tier.name}")
        if progression.is_final:
            m1, m2 = st.columns(2)
            m1.metric("👥 Total Network Size", f"{progression.total_network_size:,}")
            m2.metric("💰 Total Potential Earnings", f"${progression.total_paid_earnings:,.2f}")
            st.markdown("### 📊 Earnings by Level (Final Course)")
        else:
            m1, m2, m3, m4 = st.columns(4)
            m1.metric("🎯 Target Students", f"{progression.result.total_students_needed:,}")
            m2.metric("🤝 Active Sponsors", f"{progression.active_sponsor_count}")
            m3.metric("💰 Wallet Earnings", f"${progression.wallet_earnings:,.2f}")
            m4.metric("🏁 Target", f"${progression.target_price:,.0f}")
            st.markdown("### 📊 Earnings by Level")
            if progression.target_level > 0:
                st.caption(f"Target reached at level {progression.target_level} after {progression.result.students_at_target_level:,} students of that level")

        st.dataframe(levels_frame(progression, paid_only=True))
        fig = plot_network_growth(progression)
        st.pyplot(fig)
        plt.close(fig)

with tabs[len(result.progressions)]:
    st.header("⏱️ Time Series Projection")
    st.caption(f"One new level per unlocked course each {settings.period_name.lower()}. Unlocks take effect the following {settings.period_name.lower()}.")

    periods = result.periods
    if periods:
        final = periods[-1]
        c1, c2, c3 = st.columns(3)
        c1.metric("💰 Cumulative Wallet", f"${final.cumulative_wallet:,.2f}")
        c2.metric("🔓 Unlocked Courses", f"{len(final.unlocked_tiers)} of {len(tiers)}")
        c3.metric(f"👥 Total Students in {tiers[0].name}", f"{final.total_students_in_first_tier:,}")

        unlocks = first_unlock_periods(periods)
        for name, period in unlocks.items():
            if name != tiers[0].name:
                st.caption(f"🔓 {name} unlocked at the end of {settings.period_name} {period}")

        st.dataframe(periods_frame(periods, tiers, settings.period_name))
        fig = plot_wallet_growth(periods, settings.period_name)
        st.pyplot(fig)
        plt.close(fig)

with tabs[len(result.progressions) + 1]:
    snapshot = result.snapshot
    st.header("🌐 Full Cascade Snapshot")
    st.caption(f"Theoretical size of the {tiers[0].name} network required for the original sponsor's entire downline to progress through all courses.")

    s1, s2 = st.columns(2)
    s1.metric(f"📏 Total Required Depth in {tiers[0].name}", f"{snapshot.total_required_depth} Levels", help="The sum of depths required for each step.")
    s2.metric(f"👥 Total Students in {tiers[0].name} Network", f"{snapshot.total_network_size:,}", help="The total unique individuals required.")

    st.markdown("#### Depth Calculation Breakdown")
    st.dataframe(depth_details_frame(snapshot))

    with st.expander("📖 How to Read the Network", expanded=False):
        st.markdown(f"""
        - **Sponsor (Level 0)**: The original student who starts the network
        - **Level 1**: The sponsor's direct recruits ({settings.multiplier} students)
        - **Level 2**: Each Level 1 student recruits {settings.multiplier} more ({settings.multiplier ** 2} total students)
        - **Funding Students** (red): Students needed before the target is reached
        - **Wallet Students** (green): Additional students contributing to wallet earnings
        """)
