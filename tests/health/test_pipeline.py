"""End-to-end tests for SyncPipeline against an in-memory Google Fit."""

from datetime import UTC, datetime, timedelta

import pytest

from fitbridge.core.config import SyncSettings
from fitbridge.core.exceptions import APIError, AuthenticationError, SourceFileError
from fitbridge.health.pipeline import SyncPipeline

JAN_1 = 1_704_067_200_000  # 2024-01-01T00:00:00Z
JAN_2 = JAN_1 + 86_400_000


def _stamp(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M:%S +0000")


def _minutes(count: int, step: timedelta = timedelta(minutes=1)):
    start = datetime(2024, 1, 1, tzinfo=UTC)
    for i in range(count):
        begin = start + i * step
        yield _stamp(begin), _stamp(begin + timedelta(seconds=30))


def _pipeline(path, auth, client, **kwargs) -> SyncPipeline:
    return SyncPipeline(SyncSettings(export_path=str(path)), auth, client=client, **kwargs)


@pytest.mark.smoke
class TestSeriesSync:
    def test_weight_single_chunk(self, write_export, record, auth, fake_client):
        path = write_export(
            record("HKQuantityTypeIdentifierBodyMass", "70.5", "2024-01-01 00:00:00 +0000", unit="kg"),
            record("HKQuantityTypeIdentifierBodyMass", "71.0", "2024-01-02 00:00:00 +0000", unit="kg"),
        )
        result = _pipeline(path, auth, fake_client).run("weight")

        assert result.ok
        assert len(fake_client.created) == 1
        assert fake_client.created[0]["dataStreamName"] == "apple_health_weight_clean"
        assert len(fake_client.patches) == 1
        ds_id, dataset = fake_client.patches[0]
        assert ds_id == "raw:com.google.weight:apple_health_weight_clean"
        assert dataset["minStartTimeNs"] == str(JAN_1 * 10**6)
        assert dataset["maxEndTimeNs"] == str((JAN_2 + 60_000) * 10**6)
        assert [p["value"][0]["fpVal"] for p in dataset["point"]] == [70.5, 71.0]
        for p in dataset["point"]:
            assert int(p["endTimeNanos"]) > int(p["startTimeNanos"])

    def test_partial_chunk_failure_continues(self, write_export, record, auth, make_client):
        path = write_export(
            *[record("HKQuantityTypeIdentifierStepCount", "10", start, end) for start, end in _minutes(250)]
        )
        client = make_client(fail_patches={2})
        result = _pipeline(path, auth, client).run("steps")

        assert len(client.patches) == 3
        assert result.report.chunks_attempted == 3
        assert result.report.chunks_failed == 1
        assert result.report.points_uploaded == 150
        assert not result.ok
        assert result.error is None

    def test_oxygen_saturation_as_percentage(self, write_export, record, auth, fake_client):
        path = write_export(record("HKQuantityTypeIdentifierOxygenSaturation", "0.97", "2024-01-01 06:00:00 +0000"))
        _pipeline(path, auth, fake_client).run("oxygen_saturation")

        (point,) = fake_client.patches[0][1]["point"]
        assert point["value"] == [{"fpVal": 97.0}]

    def test_one_day_of_steps_in_fifteen_ascending_calls(self, write_export, record, auth, fake_client):
        records = [
            record("HKQuantityTypeIdentifierStepCount", "3", s, e) for s, e in _minutes(1500, timedelta(seconds=30))
        ]
        path = write_export(*records)
        _pipeline(path, auth, fake_client).run("steps", chunk_size=100)

        assert len(fake_client.patches) == 15
        starts = []
        for _, dataset in fake_client.patches:
            points = dataset["point"]
            assert dataset["minStartTimeNs"] == points[0]["startTimeNanos"]
            assert dataset["maxEndTimeNs"] == points[-1]["endTimeNanos"]
            starts.append(int(dataset["minStartTimeNs"]))
        assert starts == sorted(starts)

    def test_steps_one_upload_per_day(self, write_export, record, auth, fake_client):
        path = write_export(
            record("HKQuantityTypeIdentifierStepCount", "5", "2024-01-02 08:00:00 +0000", "2024-01-02 08:01:00 +0000"),
            record("HKQuantityTypeIdentifierStepCount", "7", "2024-01-01 08:00:00 +0000", "2024-01-01 08:01:00 +0000"),
        )
        _pipeline(path, auth, fake_client).run("steps")

        assert len(fake_client.patches) == 2
        first_day = fake_client.patches[0][1]
        assert first_day["point"][0]["value"] == [{"intVal": 7}]

    def test_calories_use_metric_chunk_size(self, write_export, record, auth, fake_client):
        path = write_export(
            *[record("HKQuantityTypeIdentifierActiveEnergyBurned", "0.5", s, e) for s, e in _minutes(1500)]
        )
        result = _pipeline(path, auth, fake_client).run("calories")

        assert result.extraction.point_count == 1500
        assert len(fake_client.patches) == 2
        assert [len(d["point"]) for _, d in fake_client.patches] == [1000, 500]

    def test_explicit_chunk_size_wins(self, write_export, record, auth, fake_client):
        path = write_export(
            *[record("HKQuantityTypeIdentifierActiveEnergyBurned", "0.5", s, e) for s, e in _minutes(1500)]
        )
        _pipeline(path, auth, fake_client).run("calories", chunk_size=100)
        assert len(fake_client.patches) == 15

    def test_existing_data_source_is_reused(self, write_export, record, auth, make_client):
        client = make_client(
            data_sources=[
                {
                    "dataStreamId": "raw:com.google.height:existing",
                    "dataStreamName": "apple_health_height_clean",
                    "dataType": {"name": "com.google.height"},
                }
            ]
        )
        path = write_export(record("HKQuantityTypeIdentifierHeight", "180", "2024-01-01 00:00:00 +0000", unit="cm"))
        _pipeline(path, auth, client).run("height")

        assert client.created == []
        assert client.patches[0][0] == "raw:com.google.height:existing"

    def test_data_source_failure_is_reported(self, write_export, record, auth, fake_client, monkeypatch):
        def boom(data_type_names=None):
            raise APIError("List data sources failed: 500")

        monkeypatch.setattr(fake_client, "list_data_sources", boom)
        path = write_export(record("HKQuantityTypeIdentifierBodyMass", "70", "2024-01-01 00:00:00 +0000"))
        result = _pipeline(path, auth, fake_client).run("weight")

        assert "500" in result.error
        assert fake_client.patches == []


class TestSessionSync:
    def _sleep(self, stage, start, end):
        return (
            f'<Record type="HKCategoryTypeIdentifierSleepAnalysis" value="HKCategoryValueSleepAnalysis{stage}" '
            f'startDate="{start}" endDate="{end}"/>'
        )

    def test_sleep_sessions_with_segments(self, write_export, auth, fake_client):
        path = write_export(
            self._sleep("AsleepCore", "2024-01-01 00:30:00 +0000", "2024-01-01 03:00:00 +0000"),
            self._sleep("AsleepREM", "2024-01-01 03:00:00 +0000", "2024-01-01 04:00:00 +0000"),
            self._sleep("AsleepDeep", "2024-01-02 01:00:00 +0000", "2024-01-02 02:00:00 +0000"),
        )
        result = _pipeline(path, auth, fake_client).run("sleep")

        assert result.ok
        assert result.sessions_created == 2
        assert [s["activityType"] for s in fake_client.sessions] == [72, 72]
        assert len(fake_client.created) == 1
        assert len(fake_client.patches) == 2
        _, first = fake_client.patches[0]
        assert first["minStartTimeNs"] == str((JAN_1 + 30 * 60_000) * 10**6)
        assert first["maxEndTimeNs"] == str((JAN_1 + 4 * 3_600_000) * 10**6)
        assert [p["value"][0]["intVal"] for p in first["point"]] == [4, 6]

    def test_in_bed_stage_widens_the_window(self, write_export, auth, fake_client):
        path = write_export(
            self._sleep("InBed", "2024-01-01 00:00:00 +0000", "2024-01-01 08:00:00 +0000"),
            self._sleep("AsleepCore", "2024-01-01 00:30:00 +0000", "2024-01-01 03:00:00 +0000"),
            self._sleep("AsleepREM", "2024-01-01 03:00:00 +0000", "2024-01-01 04:00:00 +0000"),
        )
        _pipeline(path, auth, fake_client).run("sleep")

        session = fake_client.sessions[0]
        _, dataset = fake_client.patches[0]
        assert dataset["maxEndTimeNs"] == str(session["endTimeMillis"] * 10**6)
        assert int(dataset["maxEndTimeNs"]) >= max(int(p["endTimeNanos"]) for p in dataset["point"])

    def test_failed_session_skips_segments(self, write_export, auth, make_client):
        client = make_client(fail_sessions=True)
        path = write_export(
            self._sleep("AsleepCore", "2024-01-01 00:30:00 +0000", "2024-01-01 03:00:00 +0000"),
        )
        result = _pipeline(path, auth, client).run("sleep")

        assert result.sessions_created == 0
        assert result.sessions_failed == 1
        assert client.patches == []
        assert not result.ok

    def test_segment_failure_keeps_session(self, write_export, auth, make_client):
        client = make_client(fail_patches={1})
        path = write_export(
            self._sleep("AsleepCore", "2024-01-01 00:30:00 +0000", "2024-01-01 03:00:00 +0000"),
        )
        result = _pipeline(path, auth, client).run("sleep")

        assert result.sessions_created == 1
        assert len(client.sessions) == 1
        assert result.report.chunks_failed == 1

    def test_data_source_failure_counts_every_session(self, write_export, auth, fake_client, monkeypatch):
        def unavailable(data_type_names=None):
            raise APIError("List data sources failed: 503")

        monkeypatch.setattr(fake_client, "list_data_sources", unavailable)
        workouts = [
            '<Workout workoutActivityType="HKWorkoutActivityTypeRunning" totalEnergyBurned="300" '
            f'totalEnergyBurnedUnit="kcal" startDate="2024-01-0{day} 07:00:00 +0000" '
            f'endDate="2024-01-0{day} 07:30:00 +0000"/>'
            for day in (1, 2, 3)
        ]
        result = _pipeline(write_export(*workouts), auth, fake_client).run("running")

        assert result.sessions_created + result.sessions_failed == len(result.extraction.sessions) == 3
        assert result.sessions_failed == 3
        assert "503" in result.error
        assert fake_client.sessions == []
        assert fake_client.patches == []

    def test_workout_without_energy_has_no_dataset(self, write_export, auth, fake_client):
        path = write_export(
            '<Workout workoutActivityType="HKWorkoutActivityTypeRunning" duration="30" durationUnit="min" '
            'startDate="2024-01-01 07:00:00 +0000" endDate="2024-01-01 07:30:00 +0000"/>'
        )
        result = _pipeline(path, auth, fake_client).run("running")

        assert result.sessions_created == 1
        assert fake_client.sessions[0]["name"] == "Run"
        assert fake_client.created == []
        assert fake_client.patches == []


class TestRunGuards:
    def test_dry_run_makes_no_calls(self, write_export, record, make_auth, fake_client):
        path = write_export(record("HKQuantityTypeIdentifierBodyMass", "70", "2024-01-01 00:00:00 +0000"))
        result = _pipeline(path, make_auth(token=None), fake_client).run("weight", dry_run=True)

        assert result.extraction.point_count == 1
        assert fake_client.list_calls == 0
        assert fake_client.patches == []

    def test_empty_metric_makes_no_calls(self, write_export, record, auth, fake_client):
        path = write_export(record("HKQuantityTypeIdentifierBodyMass", "70", "2024-01-01 00:00:00 +0000"))
        result = _pipeline(path, auth, fake_client).run("bmi")

        assert result.extraction.is_empty
        assert result.ok
        assert fake_client.list_calls == 0

    def test_missing_export(self, tmp_dir, auth, fake_client):
        with pytest.raises(SourceFileError, match="not found"):
            _pipeline(f"{tmp_dir}/missing.xml", auth, fake_client).run("weight")

    def test_no_token(self, write_export, record, make_auth, fake_client):
        path = write_export(record("HKQuantityTypeIdentifierBodyMass", "70", "2024-01-01 00:00:00 +0000"))
        with pytest.raises(AuthenticationError):
            _pipeline(path, make_auth(token=None), fake_client).run("weight")

    def test_unknown_metric(self, write_export, auth, fake_client):
        with pytest.raises(KeyError):
            _pipeline(write_export(), auth, fake_client).run("heart_rate")

    def test_progress_factory_is_used(self, write_export, record, auth, fake_client):
        from contextlib import contextmanager

        from fitbridge.core.progress import NullProgress

        descriptions = []

        @contextmanager
        def factory(description):
            descriptions.append(description)
            yield NullProgress()

        path = write_export(record("HKQuantityTypeIdentifierBodyMass", "70", "2024-01-01 00:00:00 +0000"))
        _pipeline(path, auth, fake_client, progress_factory=factory).run("weight")
        assert descriptions == ["Parsing weight", "Uploading weight"]
