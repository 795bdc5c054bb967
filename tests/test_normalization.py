from __future__ import annotations

import copy
import logging
from datetime import UTC, datetime

import pytest
from builders import at, make_task_call, make_vehicle_update, north_of_base, ts

from pyfleetdebug.exceptions import InputValidationError
from pyfleetdebug.ingestion.normalize import (
    format_duration,
    format_timestamp,
    get_path,
    lowercase_keys,
    parse_timestamp,
)
from pyfleetdebug.ingestion.normalizer import normalize_logs
from pyfleetdebug.models._base import LatLng
from pyfleetdebug.models.event import ApiType


class TestOrdering:
    def test_descending_input_is_reversed(self) -> None:
        records = [make_vehicle_update(s, location=north_of_base(s)) for s in (20, 10, 0)]

        events = normalize_logs(records, "ODRD").events

        assert [e.date for e in events] == [at(0), at(10), at(20)]
        assert [e.sequence_index for e in events] == [0, 1, 2]

    def test_shuffled_input_is_sorted(self) -> None:
        records = [make_vehicle_update(s) for s in (5, 0, 15, 10)]

        events = normalize_logs(records, "ODRD").events

        assert [e.date for e in events] == [at(0), at(5), at(10), at(15)]

    def test_equal_timestamps_keep_input_order(self) -> None:
        records = [
            make_vehicle_update(0, heading=1.0),
            make_vehicle_update(0, heading=2.0),
            make_vehicle_update(5),
        ]

        events = normalize_logs(records, "ODRD").events

        assert [e.last_location.heading for e in events] == [1.0, 2.0, 2.0]

    def test_server_time_used_when_timestamp_missing(self) -> None:
        records = [make_vehicle_update(0), make_vehicle_update(None, serverTime=ts(5))]

        events = normalize_logs(records, "ODRD").events

        assert [e.date for e in events] == [at(0), at(5)]
        assert events[1].timestamp == "2026-01-01T00:00:05.000Z"


class TestCarryForward:
    def test_location_heading_and_route_segment_carried(self) -> None:
        p0 = north_of_base(0)
        records = [
            make_vehicle_update(
                0,
                location=p0,
                heading=90.0,
                route_segment="encoded-polyline",
                nav_status="NAVIGATION_STATUS_ENROUTE_TO_DESTINATION",
            ),
            make_vehicle_update(10),
        ]

        events = normalize_logs(records, "ODRD").events

        carried = events[1].last_location
        assert carried.raw_location == LatLng(latitude=p0["latitude"], longitude=p0["longitude"])
        assert carried.location == carried.raw_location
        assert carried.reported_raw_location is None
        assert events[0].last_location.reported_raw_location == carried.raw_location
        assert carried.heading == 90.0
        assert carried.current_route_segment == "encoded-polyline"

    def test_no_guidance_clears_route_segment(self) -> None:
        records = [
            make_vehicle_update(0, location=north_of_base(0), heading=90.0, route_segment="encoded-polyline"),
            make_vehicle_update(10, nav_status="NAVIGATION_STATUS_NO_GUIDANCE"),
            make_vehicle_update(20),
        ]

        events = normalize_logs(records, "ODRD").events

        assert events[1].navigation_status == "NO_GUIDANCE"
        assert events[1].last_location.current_route_segment is None
        assert events[2].last_location.current_route_segment is None
        # Location and heading are not affected by navigation status.
        assert events[2].last_location.raw_location is not None
        assert events[2].last_location.heading == 90.0

    def test_newer_value_replaces_carried_value(self) -> None:
        records = [
            make_vehicle_update(0, location=north_of_base(0)),
            make_vehicle_update(10, location=north_of_base(100)),
            make_vehicle_update(20),
        ]

        events = normalize_logs(records, "ODRD").events

        assert events[2].last_location.raw_location == events[1].last_location.raw_location
        assert events[2].last_location.raw_location != events[0].last_location.raw_location

    def test_carry_does_not_mutate_requests(self) -> None:
        records = [make_vehicle_update(0, location=north_of_base(0), heading=10.0), make_vehicle_update(10)]
        before = copy.deepcopy(records)

        events = normalize_logs(records, "ODRD").events

        assert records == before
        assert "lastlocation" not in events[1].request["vehicle"]

    def test_lmfs_delivery_vehicle_body(self) -> None:
        records = [
            make_vehicle_update(0, lmfs=True, location=north_of_base(0), heading=45.0),
            make_vehicle_update(10, lmfs=True),
        ]

        events = normalize_logs(records, "LMFS").events

        assert events[0].api_type == ApiType.UPDATE_DELIVERY_VEHICLE
        assert events[1].last_location.heading == 45.0
        assert events[1].raw_location is not None


class TestRenameRules:
    def test_keys_are_lower_cased(self) -> None:
        events = normalize_logs([make_vehicle_update(0, location=north_of_base(0))], "ODRD").events

        assert get_path(events[0].request, "vehicle", "lastlocation", "rawlocation") is not None
        assert events[0].raw["jsonpayload"]["@type"].endswith("UpdateVehicleLog")

    def test_legacy_vehicle_state_field(self) -> None:
        record = make_vehicle_update(0)
        record["jsonPayload"]["response"]["state"] = "VEHICLE_STATE_ONLINE"

        event = normalize_logs([record], "ODRD").events[0]

        assert event.vehicle_state == "VEHICLE_STATE_ONLINE"

    def test_task_state_is_not_renamed(self) -> None:
        record = make_task_call(0, "t1", response={"name": "providers/p/tasks/t1", "state": "OPEN"})

        event = normalize_logs([record], "LMFS").events[0]

        assert event.response["state"] == "OPEN"
        assert event.vehicle_state is None

    def test_raw_location_defaults_to_location(self) -> None:
        record = make_vehicle_update(0)
        record["jsonPayload"]["request"]["vehicle"]["lastLocation"] = {"location": {"lat": 1.5, "lng": 2.5}}

        event = normalize_logs([record], "ODRD").events[0]

        assert event.raw_location == LatLng(latitude=1.5, longitude=2.5)

    def test_current_trip_ids_alias(self) -> None:
        record = make_vehicle_update(0)
        record["jsonPayload"]["response"]["currentTripIds"] = ["trip-a"]

        event = normalize_logs([record], "ODRD").events[0]

        assert event.response["currenttrips"] == ["trip-a"]
        assert event.trip_ids == ["trip-a"]


class TestFailures:
    def test_unrecognized_record_dropped_with_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        records = [
            make_vehicle_update(0),
            {"timestamp": ts(1), "jsonPayload": {"@type": "type.googleapis.com/maps.fleetengine.v1.SearchVehiclesLog"}},
            make_vehicle_update(2),
        ]

        with caplog.at_level(logging.WARNING, logger="pyfleetdebug"):
            result = normalize_logs(records, "ODRD")

        assert len(result.events) == 2
        assert result.unrecognized == [1]
        assert "Dropping record 1" in caplog.text

    def test_record_without_time_is_flagged(self) -> None:
        result = normalize_logs([make_vehicle_update(0), make_vehicle_update(None)], "ODRD")

        assert len(result.events) == 1
        assert result.unsortable == [1]

    def test_no_sortable_record_raises(self) -> None:
        with pytest.raises(InputValidationError) as exc_info:
            normalize_logs([make_vehicle_update(None), make_vehicle_update(None)], "ODRD")

        assert exc_info.value.index == 0

    @pytest.mark.parametrize("raw_logs", ["not logs", {"rawLogs": []}, 42])
    def test_non_sequence_input_raises(self, raw_logs: object) -> None:
        with pytest.raises(InputValidationError):
            normalize_logs(raw_logs, "ODRD")  # type: ignore[arg-type]

    def test_non_mapping_record_raises_with_index(self) -> None:
        with pytest.raises(InputValidationError) as exc_info:
            normalize_logs([make_vehicle_update(0), "oops"], "ODRD")  # type: ignore[list-item]

        assert exc_info.value.index == 1

    def test_unknown_solution_type_raises(self) -> None:
        with pytest.raises(InputValidationError):
            normalize_logs([], "RIDESHARE")

    def test_empty_input(self) -> None:
        result = normalize_logs([], "LMFS")

        assert result.events == []
        assert result.unrecognized == []


def test_parse_timestamp_formats() -> None:
    expected = datetime(2026, 1, 1, 0, 0, 1, tzinfo=UTC)

    assert parse_timestamp("2026-01-01T00:00:01Z") == expected
    assert parse_timestamp("2026-01-01T01:00:01+01:00") == expected
    assert parse_timestamp(expected.timestamp()) == expected
    assert parse_timestamp(int(expected.timestamp() * 1000)) == expected
    assert parse_timestamp({"seconds": int(expected.timestamp()), "nanos": 0}) == expected
    assert parse_timestamp("2026-01-01T00:00:01.123456789Z") == expected.replace(microsecond=123456)
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None


def test_format_timestamp_uses_z_suffix() -> None:
    assert format_timestamp(datetime(2026, 1, 1, 0, 0, 1, 500000, tzinfo=UTC)) == "2026-01-01T00:00:01.500Z"


def test_format_duration() -> None:
    assert format_duration(3_723_000) == "1 hours 2 minutes 3 seconds"
    assert format_duration(60_000) == "1 minutes"
    assert format_duration(500) == ""


def test_lowercase_keys_is_deep_and_non_mutating() -> None:
    data = {"A": {"Bc": [{"D": 1}]}}

    assert lowercase_keys(data) == {"a": {"bc": [{"d": 1}]}}
    assert data == {"A": {"Bc": [{"D": 1}]}}
