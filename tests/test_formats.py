r"""
Tests for backend_bench.reporting.formats module.
"""

import json
import os

import pytest

from backend_bench.errors import SerializationFailure
from backend_bench.reporting import (
    CsvExporter,
    JsonExporter,
    deserialize,
    read_result_set,
    serialize,
    write_atomic,
    write_result_set,
)
from backend_bench.reporting.formats import FORMAT_VERSION
from backend_bench.types import CellFailure, ResultSet


class TestSerialization:
    def test_lossless_round_trip(self, sample_result_set):
        decoded = deserialize(serialize(sample_result_set))

        assert decoded == sample_result_set
        assert decoded.measurements[("unary", "numpy")].durations == (3_000_000, 1_000_000, 2_000_000)
        assert decoded.failures[("unary", "torch-cuda")].kind == "PreparationFailure"

    def test_stores_raw_samples_only(self, sample_result_set):
        payload = json.loads(serialize(sample_result_set))

        assert payload["format_version"] == FORMAT_VERSION
        measurement = payload["measurements"][0]
        assert measurement["durations_ns"] == [3_000_000, 1_000_000, 2_000_000]
        assert "mean_ns" not in measurement
        assert payload["environment"]["hostname"] == "bench-host"

    def test_malformed_json(self):
        with pytest.raises(SerializationFailure):
            deserialize(b"{not json")

    def test_non_object_payload(self):
        with pytest.raises(SerializationFailure):
            deserialize(b"[1, 2, 3]")

    def test_unsupported_version(self, sample_result_set):
        payload = json.loads(serialize(sample_result_set))
        payload["format_version"] = 99

        with pytest.raises(SerializationFailure, match="version"):
            deserialize(json.dumps(payload).encode())

    def test_missing_field(self, sample_result_set):
        payload = json.loads(serialize(sample_result_set))
        del payload["measurements"][0]["backend"]

        with pytest.raises(SerializationFailure):
            deserialize(json.dumps(payload).encode())

    def test_float_durations_rejected(self, sample_result_set):
        payload = json.loads(serialize(sample_result_set))
        payload["measurements"][0]["durations_ns"] = [1.5, 2.0, 3.0]

        with pytest.raises(SerializationFailure):
            deserialize(json.dumps(payload).encode())

    def test_sample_count_mismatch_rejected(self, sample_result_set):
        payload = json.loads(serialize(sample_result_set))
        payload["measurements"][0]["durations_ns"] = [1]

        with pytest.raises(SerializationFailure):
            deserialize(json.dumps(payload).encode())


class TestAtomicWrite:
    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "numpy" / "unary.json"
        write_atomic(path, b"payload")
        assert path.read_bytes() == b"payload"

    def test_replaces_existing_file(self, tmp_path):
        path = tmp_path / "unary.json"
        write_atomic(path, b"old")
        write_atomic(path, b"new")

        assert path.read_bytes() == b"new"
        assert [p.name for p in tmp_path.iterdir()] == ["unary.json"]

    def test_failed_write_keeps_previous_artifact(self, tmp_path, monkeypatch):
        path = tmp_path / "unary.json"
        write_atomic(path, b"previous complete artifact")

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)
        with pytest.raises(OSError, match="disk full"):
            write_atomic(path, b"half-written")

        assert path.read_bytes() == b"previous complete artifact"
        assert [p.name for p in tmp_path.iterdir()] == ["unary.json"]

    def test_write_and_read_result_set(self, tmp_path, sample_result_set):
        path = tmp_path / "numpy" / "unary.json"
        write_result_set(path, sample_result_set)
        assert read_result_set(path) == sample_result_set


class TestJsonExporter:
    def test_export(self, tmp_path, sample_result_set):
        path = tmp_path / "results.json"
        JsonExporter().export(sample_result_set, path)
        assert read_result_set(path) == sample_result_set

    def test_to_string(self, sample_result_set):
        content = JsonExporter().to_string(sample_result_set)
        assert json.loads(content)["format_version"] == FORMAT_VERSION


class TestCsvExporter:
    def test_header_and_rows(self, sample_result_set):
        lines = CsvExporter().to_string(sample_result_set).splitlines()

        assert lines[0].startswith("session_id,benchmark,backend,status")
        assert len(lines) == 3

    def test_success_row_has_derived_stats(self, sample_result_set):
        lines = CsvExporter().to_string(sample_result_set).splitlines()
        row = next(line for line in lines if ",numpy," in line).split(",")

        assert row[3] == "SUCCEEDED"
        assert row[4] == "3"
        assert row[5] == "2.000"
        assert row[7] == "1.000"
        assert row[8] == "3.000"

    def test_failure_row(self, sample_result_set):
        content = CsvExporter().to_string(sample_result_set)
        row = next(line for line in content.splitlines() if "torch-cuda" in line)

        assert ",FAILED,0," in row
        assert row.endswith("CUDA is not available")

    def test_failure_reason_with_comma_is_quoted(self):
        failure = CellFailure(benchmark_name="data", backend_id="numpy", kind="IsolationFailure", reason="a, b")
        content = CsvExporter().to_string(ResultSet(failures={failure.key: failure}))

        assert content.splitlines()[1].endswith('"a, b"')

    def test_skip_applies_to_stats(self, sample_result_set):
        lines = CsvExporter(skip=1).to_string(sample_result_set).splitlines()
        row = next(line for line in lines if ",numpy," in line).split(",")

        assert row[4] == "2"
        assert row[5] == "1.500"

    def test_export(self, tmp_path, sample_result_set):
        path = tmp_path / "results.csv"
        CsvExporter().export(sample_result_set, path)
        assert path.read_text().startswith("session_id,")
