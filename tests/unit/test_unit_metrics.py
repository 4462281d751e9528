"""Unit tests for UnitMetrics iteration lifecycle.

Tests ensure:
- reset clears scratch state and is idempotent
- Time to OOM is measured or extrapolated and clamped to one hour
- TMI is computed only for tanks
- Death and OOM-time summaries are per-iteration averages
"""

from __future__ import annotations

import pytest

from combat_simulator.metrics import (
    ActionID,
    IterationScratch,
    ResourceType,
    SpellMetrics,
    TargetRef,
    UnitMetrics,
    estimate_time_to_oom,
)
from combat_simulator.metrics.unit_metrics import MAX_TIME_TO_OOM_SECONDS

MELEE = ActionID(other_id=1)


def snapshot(unit: UnitMetrics) -> tuple:
    return (
        {key: dist.total for key, dist in unit.distributions().items()},
        list(unit.tmi_events),
        unit.scratch,
        [(r.events_from_previous_iterations, r.actual_gain_from_previous_iterations) for r in unit.resources],
    )


class TestReset:
    def test_reset_clears_scratch(self) -> None:
        unit = UnitMetrics("tank", 0, is_tanking=True)
        unit.dps.total = 10.0
        unit.tmi.total = 3.0
        unit.record_damage_taken(1.0, 0.5)
        unit.mark_died()
        unit.add_oom_time(4.0, 2.0)

        unit.reset()

        assert all(dist.total == 0.0 for dist in unit.distributions().values())
        assert unit.tmi_events == []
        assert unit.scratch == IterationScratch()

    def test_reset_twice_equals_reset_once(self) -> None:
        unit = UnitMetrics("healer", 0, has_mana_bar=True)
        unit.get_or_create_resource(ActionID(spell_id=1), ResourceType.MANA).add_event(-50.0, -50.0)
        unit.add_mana_spent(50.0)
        unit.hps.total = 300.0
        unit.get_or_create_aura(ActionID(spell_id=2)).add_uptime(3.0)

        unit.reset()
        once = snapshot(unit)
        unit.reset()

        assert snapshot(unit) == once
        assert unit.auras[ActionID(spell_id=2)].uptime == 0.0


class TestTimeToOOM:
    @pytest.mark.parametrize(
        ("duration", "mana", "spent", "gained", "expected"),
        [
            # spends 10/s with 500 left -> 50 more seconds
            (100.0, 500.0, 1000.0, 0.0, 150.0),
            # net gain -> negative extrapolation -> one hour
            (100.0, 1000.0, 0.0, 100.0, MAX_TIME_TO_OOM_SECONDS),
            # net gain with little mana left still reports one hour
            (100.0, 50.0, 0.0, 100.0, MAX_TIME_TO_OOM_SECONDS),
            # no net spend -> one hour
            (100.0, 1000.0, 200.0, 200.0, MAX_TIME_TO_OOM_SECONDS),
            # slow spend -> capped at one hour
            (100.0, 1_000_000.0, 1.0, 0.0, MAX_TIME_TO_OOM_SECONDS),
            # out of mana exactly at the end
            (100.0, 0.0, 500.0, 0.0, 100.0),
        ],
    )
    def test_estimate(self, duration, mana, spent, gained, expected) -> None:
        assert estimate_time_to_oom(duration, mana, spent, gained) == pytest.approx(expected)

    def test_extrapolated_tto_recovers_raw_seconds(self) -> None:
        """tto.total is pre-multiplied so the per-second division yields seconds."""
        unit = UnitMetrics("healer", 0, has_mana_bar=True)
        unit.reset()
        unit.add_mana_spent(1000.0)

        unit.done_iteration(100.0, seed=1, current_mana=500.0)

        assert unit.tto.aggregator.mean == pytest.approx(150.0)
        assert unit.tto.max == pytest.approx(150.0)

    def test_first_oom_timestamp_is_used(self) -> None:
        unit = UnitMetrics("healer", 0, has_mana_bar=True)
        unit.reset()
        unit.mark_oom(42.0)
        unit.mark_oom(50.0)

        unit.done_iteration(120.0, seed=1, current_mana=10_000.0)

        assert unit.scratch.first_oom_timestamp == 42.0
        assert unit.tto.aggregator.mean == pytest.approx(42.0)

    def test_no_mana_bar_leaves_tto_zero(self) -> None:
        unit = UnitMetrics("rogue", 0)
        unit.reset()
        unit.done_iteration(100.0, seed=1, current_mana=0.0)

        assert unit.tto.aggregator.mean == 0.0


class TestTMIFolding:
    def test_tank_tmi_recovers_index(self) -> None:
        unit = UnitMetrics("tank", 0, is_tanking=True, tmi_bin_seconds=6, reference_health=1000.0)
        unit.reset()
        for t in range(60):
            unit.record_damage_taken(float(t), 10.0)

        unit.done_iteration(60.0, seed=3)

        assert unit.tmi_events[0].weighted_damage == pytest.approx(0.01)
        assert unit.tmi.aggregator.mean == pytest.approx(6.0)
        assert unit.tmi.max_seed == 3

    def test_non_tank_tmi_is_zero(self) -> None:
        unit = UnitMetrics("dps", 0)
        unit.reset()
        unit.record_damage_taken(1.0, 500.0)

        unit.done_iteration(60.0, seed=3)

        assert unit.tmi.aggregator.mean == 0.0

    def test_tmi_log_cleared_between_iterations(self) -> None:
        unit = UnitMetrics("tank", 0, is_tanking=True, reference_health=100.0)
        unit.reset()
        unit.record_damage_taken(1.0, 50.0)
        unit.done_iteration(20.0, seed=1)

        unit.reset()
        unit.done_iteration(20.0, seed=2)

        assert unit.tmi.min == 0.0
        assert unit.tmi.min_seed == 2


class TestRunSummaries:
    def test_chance_of_death_and_oom_average(self) -> None:
        unit = UnitMetrics("healer", 0)
        for seed, died, oom_seconds in ((1, True, 4.0), (2, False, 0.0), (3, False, 2.0), (4, True, 0.0)):
            unit.reset()
            if died:
                unit.mark_died()
            if oom_seconds:
                unit.add_oom_time(10.0, oom_seconds)
            unit.done_iteration(60.0, seed)

        report = unit.to_report()

        assert report.chance_of_death == 0.5
        assert report.seconds_oom_avg == 1.5

    def test_zero_iteration_report(self) -> None:
        report = UnitMetrics("idle", 4).to_report()

        assert report.name == "idle"
        assert report.unit_index == 4
        assert report.chance_of_death == 0.0
        assert report.seconds_oom_avg == 0.0
        assert report.dps.avg == 0.0

    def test_report_skips_resources_without_events(self) -> None:
        unit = UnitMetrics("warrior", 0)
        unit.new_resource_metrics(ActionID(spell_id=1), ResourceType.RAGE)
        unit.get_or_create_resource(ActionID(spell_id=2), ResourceType.RAGE).add_event(15.0, 12.0)

        report = unit.to_report()

        assert [r.id.spell_id for r in report.resources] == [2]

    def test_get_or_create_resource_keys_on_type(self) -> None:
        unit = UnitMetrics("druid", 0)
        action = ActionID(spell_id=5)

        mana = unit.get_or_create_resource(action, ResourceType.MANA)
        energy = unit.get_or_create_resource(action, ResourceType.ENERGY)

        assert mana is not energy
        assert unit.get_or_create_resource(action, ResourceType.MANA) is mana
        assert len(unit.resources) == 2


class TestPetsAndDpasp:
    def test_pet_damage_counts_for_owner(self) -> None:
        owner, pet, boss = UnitMetrics("hunter", 0), UnitMetrics("wolf", 1), UnitMetrics("boss", 2)
        for unit in (owner, pet, boss):
            unit.reset()
        pet.add_spell_metrics(MELEE, [SpellMetrics(casts=1, total_damage=300.0)], [TargetRef(boss, True)])
        owner.add_spell_metrics(MELEE, [SpellMetrics(casts=1, total_damage=600.0)], [TargetRef(boss, True)])

        pet.done_iteration(30.0, seed=1)
        owner.add_final_pet_metrics(pet)
        owner.done_iteration(30.0, seed=1)

        assert pet.dps.aggregator.mean == pytest.approx(10.0)
        assert owner.dps.aggregator.mean == pytest.approx(30.0)

    def test_dpasp_is_per_second(self) -> None:
        unit = UnitMetrics("mage", 0)
        unit.reset()
        unit.update_dpasp(1200.0)
        unit.update_dpasp(600.0)

        unit.done_iteration(60.0, seed=1)

        assert unit.dpasp.aggregator.mean == pytest.approx(30.0)


class TestUnitMerge:
    def test_merge_combines_aggregates(self) -> None:
        left, right = UnitMetrics("tank", 0), UnitMetrics("tank", 0)
        boss = UnitMetrics("boss", 1)
        for unit, seed, damage, died in ((left, 1, 100.0, False), (right, 2, 300.0, True)):
            unit.reset()
            unit.add_spell_metrics(MELEE, [SpellMetrics(casts=1, total_damage=damage)], [TargetRef(boss, True)])
            unit.get_or_create_aura(ActionID(spell_id=9)).add_procs(2)
            if died:
                unit.mark_died()
            unit.done_iteration(10.0, seed)

        left.merge(right)
        report = left.to_report()

        assert report.dps.avg == pytest.approx(20.0)
        assert (report.dps.max, report.dps.max_seed) == (30.0, 2)
        assert report.chance_of_death == 0.5
        assert report.actions[0].targets[0].damage == 400.0
        assert report.auras[0].procs_avg == 2.0

    def test_aura_seen_by_one_worker_is_padded(self) -> None:
        """The other worker's iterations count as 0 uptime for the aura."""
        left, right = UnitMetrics("tank", 0), UnitMetrics("tank", 0)
        shield_wall = ActionID(spell_id=871)
        for seed in (1, 2):
            left.reset()
            left.done_iteration(10.0, seed)
        for seed in (3, 4):
            right.reset()
            right.get_or_create_aura(shield_wall).add_uptime(6.0)
            right.done_iteration(10.0, seed)

        left.merge(right)

        aura = left.auras[shield_wall]
        assert aura.aggregator.count == 4
        assert aura.to_report().uptime_seconds_avg == pytest.approx(3.0)

    def test_aura_only_on_self_is_padded(self) -> None:
        left, right = UnitMetrics("tank", 0), UnitMetrics("tank", 0)
        shield_wall = ActionID(spell_id=871)
        left.reset()
        left.get_or_create_aura(shield_wall).add_procs(4)
        left.done_iteration(10.0, 1)
        for seed in (2, 3, 4):
            right.reset()
            right.done_iteration(10.0, seed)

        left.merge(right)

        assert left.auras[shield_wall].to_report().procs_avg == pytest.approx(1.0)


class TestLateAura:
    def test_aura_first_seen_late_averages_over_all_iterations(self) -> None:
        unit = UnitMetrics("tank", 0)
        for seed in range(1, 10):
            unit.reset()
            unit.done_iteration(10.0, seed)

        unit.reset()
        aura = unit.get_or_create_aura(ActionID(spell_id=871))
        aura.add_uptime(10.0)
        aura.add_procs(1)
        unit.done_iteration(10.0, 10)

        report = unit.to_report().auras[0]
        assert report.uptime_seconds_avg == pytest.approx(1.0)
        assert report.uptime_seconds_stdev == pytest.approx(3.0)
        assert report.procs_avg == pytest.approx(0.1)
