import pytest

from network_engine import simulate_periods
from network_settings import NetworkSettings, Tier, effective_percentages


def unlock_period(records, name):
    return next((r.period for r in records if name in r.unlocked_tiers), None)


class TestCourseUnlockMilestones:
    """Period-by-period simulation of unlocking courses"""

    def setup_method(self):
        self.settings = NetworkSettings(number_of_periods=10)
        self.percentages = effective_percentages(self.settings)
        self.tiers = (Tier("Course 1", 15), Tier("Course 2", 100))

    def test_two_course_unlock_period(self):
        """Test Course 2 unlocks once Course 1 reserves 100"""
        records = simulate_periods(self.tiers, self.settings, self.percentages)
        assert len(records) == 10
        assert unlock_period(records, "Course 2") == 4
        for r in records[:3]:
            assert r.unlocked_tiers == ("Course 1",)
        assert records[3].unlocked_tiers == ("Course 1", "Course 2")

    def test_full_reserve_wallet(self):
        """Test a 100% reserve keeps the wallet empty until the unlock"""
        records = simulate_periods(self.tiers, self.settings, self.percentages)
        assert [r.cumulative_wallet for r in records[:4]] == [0, 0, 0, 0]

        expected = [591.75, 2367.0, 2772.0, 3987.0, 7632.0, 18567.0]
        assert [r.cumulative_wallet for r in records[4:]] == pytest.approx(expected)

    def test_period_earnings(self):
        """Test each period earns from the newly grown level only"""
        records = simulate_periods(self.tiers, self.settings, self.percentages)
        course_1 = [r.tier_earnings["Course 1"] for r in records]
        course_2 = [r.tier_earnings["Course 2"] for r in records]

        assert course_1 == pytest.approx([6.75, 20.25, 60.75, 182.25, 546.75, 1640.25, 0, 0, 0, 0])
        assert course_2 == pytest.approx([0, 0, 0, 0, 45, 135, 405, 1215, 3645, 10935])
        for r in records:
            assert r.total_period_earnings == pytest.approx(sum(r.tier_earnings.values()))

    def test_unlock_visible_next_period(self):
        """Test the unlocking period still uses the pre-unlock state"""
        records = simulate_periods(self.tiers, self.settings, self.percentages)
        assert records[3].tier_earnings["Course 2"] == 0
        assert records[4].tier_earnings["Course 2"] == 45

    def test_student_growth(self):
        """Test first-course growth and running totals"""
        records = simulate_periods(self.tiers, self.settings, self.percentages)
        assert [r.new_students_this_period for r in records[:4]] == [3, 9, 27, 81]
        assert [r.total_students_in_first_tier for r in records[:4]] == [3, 12, 39, 120]
        assert records[-1].total_students_in_first_tier == sum(3 ** p for p in range(1, 11))

    def test_partial_reserve_wallet(self):
        """Test a 50% reserve splits commissions until the unlock"""
        settings = self.settings.with_changes(reserve_percentage=50)
        records = simulate_periods(self.tiers, settings, self.percentages)
        assert unlock_period(records, "Course 2") == 4
        assert records[3].cumulative_wallet == pytest.approx(135.0)
        assert records[4].cumulative_wallet == pytest.approx(726.75)

    def test_zero_reserve_never_unlocks(self):
        """Test nothing is saved toward the next course without a reserve"""
        settings = self.settings.with_changes(reserve_percentage=0)
        records = simulate_periods(self.tiers, settings, self.percentages)
        assert unlock_period(records, "Course 2") is None
        assert records[-1].cumulative_wallet == pytest.approx(2457.0)

    def test_three_course_cascade(self):
        """Test savings are a one-shot gate and never spent"""
        tiers = self.tiers + (Tier("Course 3", 500),)
        records = simulate_periods(tiers, self.settings, self.percentages)

        assert unlock_period(records, "Course 2") == 4
        assert unlock_period(records, "Course 3") == 7
        # Course 2 reserves everything while Course 3 is locked
        assert records[6].cumulative_wallet == pytest.approx(2187.0)
        assert records[7].tier_earnings["Course 3"] == pytest.approx(225.0)
        assert records[7].cumulative_wallet == pytest.approx(3627.0)

    def test_free_next_course_unlocks_immediately(self):
        """Test a free next course unlocks after the first period"""
        tiers = (Tier("Course 1", 15), Tier("Course 2", 0))
        records = simulate_periods(tiers, self.settings, self.percentages)
        assert unlock_period(records, "Course 2") == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
