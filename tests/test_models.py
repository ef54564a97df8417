"""Tests for observation models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from weather_underground_bridge.core.exceptions import DecodeError
from weather_underground_bridge.models.observation import (
    Observation,
    RawMeasurements,
    RawResponse,
)
from weather_underground_bridge.models.units import Unit

TIMESTAMP = datetime(2023, 1, 1, 12, tzinfo=timezone.utc)


def _raw(payload, unit=Unit.METRIC):
    return RawResponse.from_payload(payload, station_id="IPARIS18204", unit=unit)


class TestRawMeasurements:
    """Test the unit sub-document schema."""

    def test_camel_case_aliases(self):
        """Test wire names map to model attributes."""
        block = RawMeasurements.model_validate({"heatIndex": 20.1, "precipTotal": 1.2})
        assert block.heat_index == 20.1
        assert block.precip_total == 1.2

    def test_empty_block(self):
        """Test empty and all-null blocks are empty."""
        assert RawMeasurements.model_validate({}).is_empty()
        assert RawMeasurements.model_validate({"temp": None, "pressure": None}).is_empty()
        assert not RawMeasurements.model_validate({"temp": 0}).is_empty()

    def test_scalars_are_kept_as_received(self):
        """Test numeric validation is left to conversion."""
        block = RawMeasurements.model_validate({"temp": "abc", "pressure": 1013})
        assert block.temp == "abc"
        assert block.pressure == 1013


class TestRawResponse:
    """Test envelope validation."""

    def test_parses_envelope(self, make_payload):
        """Test a real-shaped payload is accepted."""
        raw = _raw(make_payload())
        assert raw.observation.station_id == "IPARIS18204"
        assert raw.observation.obs_time_utc == "2023-01-01T12:00:00Z"
        assert raw.observation.metric.temp == 21.5
        assert raw.observation.imperial is None

    def test_non_object_root(self):
        """Test a JSON array is not an envelope."""
        with pytest.raises(DecodeError, match="Expected a JSON object"):
            _raw([1, 2, 3])

    def test_observations_not_a_list(self):
        """Test a malformed observations member."""
        with pytest.raises(DecodeError, match="observations"):
            _raw({"observations": "none"})

    def test_unit_block_not_an_object(self, make_payload):
        """Test a scalar where the unit block belongs."""
        with pytest.raises(DecodeError, match="metric"):
            _raw(make_payload(metric=42))

    def test_nested_measurement_value(self, make_payload):
        """Test a measurement holding an object."""
        with pytest.raises(DecodeError):
            _raw(make_payload(humidity={"value": 55}))

    def test_decode_error_keeps_station(self):
        """Test error context."""
        with pytest.raises(DecodeError) as exc_info:
            _raw("text")
        assert exc_info.value.station_id == "IPARIS18204"

    def test_has_data(self, make_payload):
        """Test the no-data rules."""
        assert _raw(make_payload()).has_data()
        assert not _raw({"observations": []}).has_data()
        assert not _raw({}).has_data()
        assert not _raw(make_payload(metric={})).has_data()
        assert not _raw(make_payload(metric={"temp": None})).has_data()
        assert not _raw(make_payload(drop=("metric",))).has_data()

    def test_other_unit_block_counts_as_data(self, make_payload):
        """Test a response in the wrong unit is not mistaken for no data."""
        payload = make_payload(drop=("metric",), imperial={"temp": 70.7})
        assert _raw(payload, unit=Unit.METRIC).has_data()
        assert _raw(payload, unit=Unit.IMPERIAL).has_data()


class TestObservation:
    """Test the validated domain model."""

    def test_valid_observation(self):
        """Test a valid observation is created."""
        obs = Observation(
            station_id="IPARIS18204",
            timestamp=TIMESTAMP,
            unit=Unit.METRIC,
            temperature=21.5,
            humidity=55.0,
        )
        assert obs.temperature == 21.5
        assert obs.pressure is None
        assert obs.fields() == {"temperature": 21.5, "humidity": 55.0}

    def test_out_of_range_rejected(self):
        """Test the range invariant holds for direct construction."""
        with pytest.raises(ValidationError, match="humidity"):
            Observation(
                station_id="IPARIS18204",
                timestamp=TIMESTAMP,
                unit=Unit.METRIC,
                humidity=101.0,
            )

    def test_range_follows_unit(self):
        """Test 100 °F is valid while 100 °C is not."""
        Observation(station_id="S", timestamp=TIMESTAMP, unit=Unit.IMPERIAL, temperature=100.0)
        with pytest.raises(ValidationError):
            Observation(station_id="S", timestamp=TIMESTAMP, unit=Unit.METRIC, temperature=100.0)

    def test_naive_timestamp_rejected(self):
        """Test timestamps must be unambiguous."""
        with pytest.raises(ValidationError, match="timezone"):
            Observation(station_id="S", timestamp=datetime(2023, 1, 1, 12), unit=Unit.METRIC)

    def test_empty_station_rejected(self):
        """Test station id must not be empty."""
        with pytest.raises(ValidationError):
            Observation(station_id="", timestamp=TIMESTAMP, unit=Unit.METRIC)

    def test_frozen(self):
        """Test observations are immutable."""
        obs = Observation(station_id="S", timestamp=TIMESTAMP, unit=Unit.METRIC)
        with pytest.raises(ValidationError):
            obs.temperature = 10.0

    def test_json_serialization(self):
        """Test observation can be serialized to JSON."""
        obs = Observation(
            station_id="IPARIS18204",
            timestamp=TIMESTAMP,
            unit=Unit.METRIC,
            temperature=21.5,
        )
        json_data = obs.model_dump(mode="json")

        assert json_data["station_id"] == "IPARIS18204"
        assert json_data["unit"] == "m"
        assert json_data["temperature"] == 21.5
        assert json_data["timestamp"].startswith("2023-01-01T12:00:00")
