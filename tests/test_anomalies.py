from __future__ import annotations

import pytest
from builders import at, make_vehicle_update, north_of_base, ts

from pyfleetdebug.analysis import stats
from pyfleetdebug.analysis.dwell import detect_dwell_locations
from pyfleetdebug.analysis.eta import detect_eta_deltas
from pyfleetdebug.analysis.geo import haversine_m
from pyfleetdebug.analysis.missing_updates import detect_missing_updates
from pyfleetdebug.analysis.velocity import compute_jumps, detect_high_velocity_jumps
from pyfleetdebug.config import DebuggerConfig
from pyfleetdebug.ingestion.normalizer import normalize_logs
from pyfleetdebug.models._base import LatLng
from pyfleetdebug.models.event import NormalizedEvent


def _events(records: list[dict], solution_type: str = "ODRD") -> list[NormalizedEvent]:
    return normalize_logs(records, solution_type).events


def _shuttle(step_m: float, count: int, interval_s: float = 10.0) -> list[dict]:
    """Updates bouncing between two points ``step_m`` apart."""
    return [
        make_vehicle_update(i * interval_s, location=north_of_base(step_m if i % 2 else 0.0)) for i in range(count)
    ]


def _updates_at(offsets: list[float]) -> list[dict]:
    here = north_of_base(0)
    return [make_vehicle_update(offset, location=here) for offset in offsets]


def _cumulative(intervals_s: list[float]) -> list[float]:
    offsets = [0.0]
    for interval in intervals_s:
        offsets.append(offsets[-1] + interval)
    return offsets


class TestVelocityJumps:
    def test_steady_plausible_speed_not_flagged(self) -> None:
        result = detect_high_velocity_jumps(_events(_shuttle(400, 12)))

        assert result.jumps == []
        assert result.pair_count == 11
        assert result.median_velocity == pytest.approx(40.0)
        assert result.computed_outlier == pytest.approx(40.0)

    def test_velocity_above_ceiling_always_flagged(self) -> None:
        result = detect_high_velocity_jumps(_events(_shuttle(700, 12)))

        assert len(result.jumps) == 11
        assert result.computed_outlier == 68.0
        assert all(jump.velocity == pytest.approx(70.0) for jump in result.jumps)

    def test_statistical_outlier_flagged(self) -> None:
        records = _shuttle(100, 21)
        records.append(make_vehicle_update(210, location=north_of_base(300)))

        result = detect_high_velocity_jumps(_events(records))

        assert result.pair_count == 21
        assert len(result.jumps) == 1
        jump = result.jumps[0]
        assert jump.velocity == pytest.approx(30.0)
        assert jump.start_date == at(200)
        assert jump.end_date == at(210)
        assert jump.distance_traveled == pytest.approx(300.0)
        assert result.median_velocity == pytest.approx(10.0)
        assert 10.0 < result.computed_outlier < 30.0

    def test_results_sorted_by_velocity(self) -> None:
        records = _updates_at([0, 10, 20])
        records.append(make_vehicle_update(30, location=north_of_base(5000)))
        records.append(make_vehicle_update(40, location=north_of_base(1000)))

        result = detect_high_velocity_jumps(_events(records))

        assert [round(jump.velocity) for jump in result.jumps] == [400, 500]

    def test_short_hops_are_never_jumps(self) -> None:
        records = _updates_at([0, 10, 20])
        records.append(make_vehicle_update(20.001, location=north_of_base(0.9)))

        result = detect_high_velocity_jumps(_events(records))

        assert result.jumps == []

    def test_zero_elapsed_pairs_excluded(self) -> None:
        records = [
            make_vehicle_update(0, location=north_of_base(0)),
            make_vehicle_update(10, location=north_of_base(100)),
            make_vehicle_update(10, location=north_of_base(5000)),
            make_vehicle_update(20, location=north_of_base(5100)),
        ]

        result = detect_high_velocity_jumps(_events(records))

        assert result.pair_count == 2
        assert result.jumps == []

    def test_window_restricts_pairs(self) -> None:
        records = _updates_at([0, 10, 20])
        records.append(make_vehicle_update(30, location=north_of_base(5000)))
        events = _events(records)

        assert len(detect_high_velocity_jumps(events).jumps) == 1
        assert detect_high_velocity_jumps(events, at(0), at(20)).jumps == []

    def test_custom_ceiling(self) -> None:
        config = DebuggerConfig(velocity_ceiling_mps=30.0)

        result = detect_high_velocity_jumps(_events(_shuttle(400, 4)), config=config)

        assert len(result.jumps) == 3
        assert result.computed_outlier == 30.0

    def test_log_viewer_entries(self) -> None:
        result = detect_high_velocity_jumps(_events(_shuttle(700, 3)))

        entries = result.get_log_viewer_entries()

        assert [entry.api_type for entry in entries] == ["Jump", "Jump"]
        assert entries[0].payload["computedOutlierVelocity"] == 68.0
        assert entries[0].payload["velocityMPH"] == pytest.approx(70.0 * 2.237)

    def test_detection_is_repeatable(self) -> None:
        events = _events(_shuttle(700, 6))

        assert detect_high_velocity_jumps(events) == detect_high_velocity_jumps(events)
        assert len(compute_jumps(events)) == 5

    def test_unlocated_updates_ignored(self) -> None:
        records = [make_vehicle_update(0), make_vehicle_update(10)]

        assert detect_high_velocity_jumps(_events(records)).pair_count == 0

    def test_unlocated_update_does_not_split_pair(self) -> None:
        records = [
            make_vehicle_update(0, location=north_of_base(0)),
            make_vehicle_update(10),
            make_vehicle_update(20, location=north_of_base(1000)),
        ]

        result = detect_high_velocity_jumps(_events(records))

        (pair,) = compute_jumps(_events(records))
        assert pair.time_spent_ms == 20_000.0
        assert pair.velocity == pytest.approx(50.0)
        assert result.pair_count == 1
        assert result.jumps == []


class TestMissingUpdates:
    def test_threshold_follows_median(self) -> None:
        offsets = _cumulative([5.0] * 20 + [55.0])

        result = detect_missing_updates(_events(_updates_at(offsets)))

        assert result.median_interval == 5000.0
        assert result.computed_outlier == 50_000.0
        assert [gap.interval_ms for gap in result.updates] == [55_000.0]

    def test_gap_below_threshold_not_flagged(self) -> None:
        offsets = _cumulative([5.0] * 20 + [45.0])

        result = detect_missing_updates(_events(_updates_at(offsets)))

        assert result.updates == []

    def test_threshold_capped_at_ceiling(self) -> None:
        offsets = _cumulative([10.0] * 20 + [60.0])

        result = detect_missing_updates(_events(_updates_at(offsets)))

        assert result.computed_outlier == 60_000
        assert [gap.interval_ms for gap in result.updates] == [60_000.0]

    def test_sorted_ascending_by_interval(self) -> None:
        offsets = _cumulative([5.0] * 20 + [90.0, 5.0, 55.0])

        result = detect_missing_updates(_events(_updates_at(offsets)))

        assert [gap.interval_ms for gap in result.updates] == [55_000.0, 90_000.0]

    def test_featured_data_and_state_transition(self) -> None:
        here = north_of_base(0)
        offsets = _cumulative([5.0] * 20)
        records = [make_vehicle_update(offset, location=here) for offset in offsets]
        records.append(make_vehicle_update(offsets[-1] + 75, location=here, vehicle_state="VEHICLE_STATE_OFFLINE"))
        records[-2] = make_vehicle_update(offsets[-1], location=here, vehicle_state="VEHICLE_STATE_ONLINE")

        result = detect_missing_updates(_events(records))

        (gap,) = result.updates
        assert gap.get_state_transition() == "ONLINE>OFFLINE"
        assert gap.duration == "1 minutes 15 seconds"
        entry = gap.get_log_viewer_entry(result.computed_outlier)
        assert entry.api_type == "Missing Updates"
        assert entry.payload["temporal_gap"] == "1 minutes 15 seconds"
        assert entry.payload["state"] == "ONLINE>OFFLINE"
        assert entry.payload["computedOutlier"] == "50 seconds"

    def test_unlocated_ping_does_not_hide_gap(self) -> None:
        offsets = _cumulative([5.0] * 20)
        records = _updates_at(offsets + [offsets[-1] + 55])
        records.append(make_vehicle_update(offsets[-1] + 27.5))

        result = detect_missing_updates(_events(records))

        assert result.pair_count == 21
        assert [gap.interval_ms for gap in result.updates] == [55_000.0]

    def test_empty(self) -> None:
        result = detect_missing_updates([])

        assert result.updates == []
        assert result.computed_outlier is None


class TestDwellLocations:
    def test_eleven_updates_are_not_a_dwell(self) -> None:
        records = _updates_at([10.0 * i for i in range(11)])

        assert detect_dwell_locations(_events(records)) == []

    def test_twelve_updates_are_a_dwell(self) -> None:
        records = _updates_at([10.0 * i for i in range(12)])

        (dwell,) = detect_dwell_locations(_events(records))

        assert dwell.updates == 12
        assert dwell.start_date == at(0)
        assert dwell.end_date == at(110)
        assert dwell.leader == LatLng.model_validate(north_of_base(0))
        assert dwell.get_featured_data()["duration"] == "1 minutes 50 seconds"

    def test_radius_splits_clusters(self) -> None:
        records = [make_vehicle_update(i, location=north_of_base(15 if i % 2 else 0)) for i in range(12)]
        records += [make_vehicle_update(100 + i, location=north_of_base(40)) for i in range(12)]

        dwells = detect_dwell_locations(_events(records))

        assert [dwell.updates for dwell in dwells] == [12, 12]

    def test_unlocated_updates_do_not_count(self) -> None:
        records = [make_vehicle_update(0, location=north_of_base(0))]
        records += [make_vehicle_update(10.0 * i) for i in range(1, 12)]

        assert detect_dwell_locations(_events(records)) == []

    def test_unlocated_updates_between_located_ones(self) -> None:
        records = _updates_at([10.0 * i for i in range(12)])
        records += [make_vehicle_update(10.0 * i + 5) for i in range(11)]

        (dwell,) = detect_dwell_locations(_events(records))

        assert dwell.updates == 12
        assert dwell.end_date == at(110)

    def test_no_time_bound(self) -> None:
        # Two visits a day apart merge into one cluster.
        records = _updates_at([float(i) for i in range(6)] + [86_400.0 + i for i in range(6)])

        (dwell,) = detect_dwell_locations(_events(records))

        assert dwell.updates == 12


class TestEtaDeltas:
    def test_deltas_between_consecutive_etas(self) -> None:
        here = north_of_base(0)
        records = [
            make_vehicle_update(0, location=here, eta=ts(600)),
            make_vehicle_update(10, location=here, eta=ts(600)),
            make_vehicle_update(15, location=here),
            make_vehicle_update(20, location=here, eta=ts(660)),
        ]

        deltas = detect_eta_deltas(_events(records))

        assert [d.delta_seconds for d in deltas] == [0.0, 60.0]
        assert [d.elapsed_seconds for d in deltas] == [10.0, 10.0]
        assert deltas[1].date == at(20)
        assert deltas[1].coords == LatLng.model_validate(here)

    def test_lmfs_delivery_vehicle_eta(self) -> None:
        here = north_of_base(0)
        records = [
            make_vehicle_update(0, lmfs=True, location=here, eta=ts(600)),
            make_vehicle_update(10, lmfs=True, location=here, eta=ts(590)),
        ]

        (delta,) = detect_eta_deltas(_events(records, "LMFS"))

        assert delta.delta_seconds == -10.0


def test_haversine_distance() -> None:
    start = LatLng(latitude=0.0, longitude=0.0)
    end = LatLng(latitude=0.0, longitude=1.0)

    assert haversine_m(start, end) == pytest.approx(111_195, rel=1e-3)
    assert haversine_m(start, start) == 0.0


def test_stats_helpers() -> None:
    assert stats.median([3.0, 1.0, 10.0, 2.0]) == 2.5
    assert stats.median([]) is None
    assert stats.mean([1.0, 2.0, 3.0]) == 2.0
    assert stats.stddev([5.0]) == 0.0
    assert stats.stddev([]) is None
