import pytest

from network_engine import (
    allocate_wallet,
    cascade_snapshot,
    cascade_step_depths,
    compute_network,
    run_pipeline,
    simulate_periods,
)
from network_settings import NetworkSettings, Tier, effective_percentages

PERCENTAGES = (15, 15, 15, 15, 15, 15)


class TestDegenerateConfigurations:
    """Degenerate inputs degrade to empty or zero results, never to errors"""

    def test_zero_tiers(self):
        """Test an empty course list yields empty results"""
        result = run_pipeline((), NetworkSettings())
        assert result.progressions == ()
        assert result.visualization_depths == ()
        assert result.periods == ()
        assert result.snapshot.total_network_size == 0
        assert result.snapshot.total_required_depth == 0
        assert result.snapshot.depth_details == ()

    def test_zero_payout_levels(self):
        """Test zero payout levels earn nothing anywhere"""
        settings = NetworkSettings(payout_levels=0)
        tiers = (Tier("Course 1", 15), Tier("Course 2", 100))
        result = run_pipeline(tiers, settings)

        assert result.effective_percentages == ()
        assert result.snapshot.total_required_depth == 0
        assert result.snapshot.total_network_size == 0
        assert all(p.result.levels == () for p in result.progressions)
        assert all(p.wallet_earnings == 0 for p in result.progressions)
        assert result.periods[-1].cumulative_wallet == 0
        assert result.periods[-1].unlocked_tiers == ("Course 1",)

    def test_zero_reserve_never_finds_target(self):
        """Test a zero reserve disables target search without dividing by zero"""
        result = compute_network(15, 100, PERCENTAGES, 3, 6, 40, 0)
        assert result.target_level == -1
        assert result.total_students_needed == 0
        assert allocate_wallet(result, 100, 0) == pytest.approx(2457.0)

    @pytest.mark.parametrize("target", [0, -50])
    def test_non_positive_target_disables_search(self, target):
        """Test a target <= 0 behaves like a final course"""
        result = compute_network(15, target, PERCENTAGES, 3, 6, 6, 100)
        assert result.target_level == -1
        assert result.students_at_target_level == 0
        assert not any(l.target_met for l in result.levels)

    def test_zero_price_earns_nothing(self):
        """Test a free course never reaches a target"""
        result = compute_network(0, 100, PERCENTAGES, 3, 6, 6, 100)
        assert result.target_level == -1
        assert all(l.level_earnings == 0 for l in result.levels)

    def test_unreachable_target_adds_no_depth(self):
        """Test a target beyond the level limit contributes zero depth"""
        settings = NetworkSettings()
        tiers = (Tier("Course 1", 15), Tier("Course 2", 10 ** 12))
        percentages = effective_percentages(settings)
        assert cascade_step_depths(tiers, settings, percentages) == (0, 6)
        assert cascade_snapshot(tiers, settings, percentages).total_required_depth == 6

    def test_free_next_course_is_final(self):
        """Test a next course without a price is not a target"""
        tiers = (Tier("Course 1", 15), Tier("Course 2", 0))
        result = run_pipeline(tiers, NetworkSettings())
        assert result.progressions[0].is_final
        assert result.progressions[0].target_price is None

    def test_single_tier(self):
        """Test a single course pays straight into the wallet"""
        tiers = (Tier("Course 1", 15),)
        result = run_pipeline(tiers, NetworkSettings())
        assert result.snapshot.total_required_depth == 6
        assert result.snapshot.depth_details[0].trigger == "For full payout in Course 1"
        assert result.progressions[0].is_final
        assert result.periods[5].cumulative_wallet == pytest.approx(2457.0)

    def test_deep_network_counts_stay_exact(self):
        """Test student counts are exact integers at the level limit"""
        result = compute_network(15, 0, PERCENTAGES, 10, 6, 40, 100)
        assert result.levels[-1].students == 10 ** 40
        assert isinstance(result.levels[-1].students, int)

    def test_single_period(self):
        """Test one period produces one record"""
        settings = NetworkSettings(number_of_periods=1)
        records = simulate_periods((Tier("Course 1", 15), Tier("Course 2", 100)), settings, PERCENTAGES)
        assert len(records) == 1
        assert records[0].new_students_this_period == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
