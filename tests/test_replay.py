"""Tests for sample recording and replay."""

import pytest

from heading_fusion.core.types import GyroSample, PositionReport, SensorKind, Vector3
from heading_fusion.communication.bus import SensorHub
from heading_fusion.communication.replay import ReplaySource, SampleRecorder, read_samples
from heading_fusion.fusion.aggregator import HeadingAggregator
from heading_fusion.fusion.engine import HeadingEngine


def make_engine(config, hub):
    engine = HeadingEngine(config, aggregator=HeadingAggregator(clock=lambda: 0.0))
    engine.attach(hub)
    return engine


class TestSampleRecorder:
    """Tests for SampleRecorder class."""

    def test_records_every_stream(self, tmp_path, sample_sequence):
        path = tmp_path / "session.csv"
        hub = SensorHub()

        with SampleRecorder(path) as recorder:
            recorder.attach(hub)
            for kind, sample in sample_sequence:
                hub.publish(kind, sample)

        assert recorder.row_count == len(sample_sequence)
        assert path.read_text().splitlines()[0] == "kind,timestamp,x,y,z,w"

    def test_write_requires_open(self, tmp_path):
        recorder = SampleRecorder(tmp_path / "closed.csv")
        with pytest.raises(RuntimeError):
            recorder.write(SensorKind.ACCELEROMETER, Vector3(0.0, 0.0, 1.0))

    def test_close_detaches(self, tmp_path):
        hub = SensorHub()
        recorder = SampleRecorder(tmp_path / "session.csv")
        recorder.open()
        recorder.attach(hub)
        recorder.close()

        assert hub.subscriber_count(SensorKind.GYROSCOPE) == 0


class TestReplay:
    """Tests for read_samples and ReplaySource."""

    def test_values_preserved(self, tmp_path):
        path = tmp_path / "values.csv"
        with SampleRecorder(path) as recorder:
            recorder.write(SensorKind.GYROSCOPE, GyroSample(0.123456789, 1.5))
            recorder.write(SensorKind.MAGNETOMETER, Vector3(1.0 / 3.0, -2.0, 45.0))
            recorder.write(SensorKind.POSITION, PositionReport(timestamp=2.0, course=-1.0))
            recorder.write(SensorKind.POSITION, PositionReport(
                timestamp=3.0, true_heading=12.5, magnetic_heading=10.25))

        samples = list(read_samples(path))

        assert samples[0] == (SensorKind.GYROSCOPE, GyroSample(0.123456789, 1.5))
        assert samples[1] == (SensorKind.MAGNETOMETER, Vector3(1.0 / 3.0, -2.0, 45.0))
        kind, report = samples[2]
        assert kind is SensorKind.POSITION
        assert report.course == -1.0
        assert report.true_heading is None
        assert report.magnetic_heading is None

        _, report = samples[3]
        assert report.true_heading == 12.5
        assert report.magnetic_heading == 10.25

    def test_reads_rows_without_magnetic_column(self, tmp_path):
        """Five-column recordings load with no magnetic heading."""
        path = tmp_path / "old.csv"
        path.write_text("kind,timestamp,x,y,z\nposition,1.0,90.0,45.0,2.0\n")

        (kind, report), = read_samples(path)

        assert kind is SensorKind.POSITION
        assert report.course == 45.0
        assert report.magnetic_heading is None

    def test_replay_reproduces_headings(self, tmp_path, config, sample_sequence):
        """Replaying a recording yields exactly the live headings."""
        path = tmp_path / "session.csv"
        live_hub = SensorHub()
        live = make_engine(config, live_hub)

        with SampleRecorder(path) as recorder:
            recorder.attach(live_hub)
            for kind, sample in sample_sequence:
                live_hub.publish(kind, sample)

        replay_hub = SensorHub()
        replayed = make_engine(config, replay_hub)
        count = ReplaySource(path).run(replay_hub)

        assert count == len(sample_sequence)
        assert replayed.snapshot() == live.snapshot()

    def test_limit(self, tmp_path, sample_sequence):
        path = tmp_path / "session.csv"
        with SampleRecorder(path) as recorder:
            for kind, sample in sample_sequence:
                recorder.write(kind, sample)

        assert ReplaySource(path).run(SensorHub(), limit=10) == 10

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ReplaySource(tmp_path / "missing.csv")

    def test_unknown_kind(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("kind,timestamp,x,y,z\nbarometer,0.0,1,2,3\n")

        with pytest.raises(ValueError):
            list(read_samples(path))

    def test_short_row(self, tmp_path):
        path = tmp_path / "short.csv"
        path.write_text("gyroscope,0.0,1\n")

        with pytest.raises(ValueError):
            list(read_samples(path))
