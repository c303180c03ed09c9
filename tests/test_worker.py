r"""
Tests for backend_bench.runner.worker module.
"""

import pytest
from typer.testing import CliRunner

from backend_bench.reporting import read_result_set
from backend_bench.runner.worker import app, run_cell


class TestRunCell:
    def test_success_writes_measurement(self, tmp_path, registered_fake):
        output = tmp_path / "fake" / "unary.json"

        exit_code = run_cell("fake", "unary", output, repeat_count=3)

        assert exit_code == 0
        result_set = read_result_set(output)
        measurement = result_set.measurements[("unary", "fake")]
        assert len(measurement.durations) == 3
        assert measurement.metadata["device"] == "cpu"
        assert measurement.metadata["rss_bytes"] > 0
        assert measurement.metadata["asynchronous"] is False
        assert result_set.failure_count == 0

    def test_unknown_backend_records_failure(self, tmp_path):
        output = tmp_path / "nope" / "unary.json"

        exit_code = run_cell("nope", "unary", output, repeat_count=1)

        assert exit_code == 1
        failure = read_result_set(output).failures[("unary", "nope")]
        assert failure.kind == "PreparationFailure"
        assert "Unknown backend" in failure.reason

    def test_unknown_benchmark_records_failure(self, tmp_path, registered_fake):
        output = tmp_path / "fake" / "nope.json"

        assert run_cell("fake", "nope", output, repeat_count=1) == 1
        assert read_result_set(output).failures[("nope", "fake")].kind == "PreparationFailure"

    def test_zero_repeats_is_contract_violation(self, tmp_path, registered_fake):
        output = tmp_path / "fake" / "unary.json"

        assert run_cell("fake", "unary", output, repeat_count=0) == 1
        assert read_result_set(output).failures[("unary", "fake")].kind == "ContractViolation"

    def test_unavailable_device(self, tmp_path, registered_fake, monkeypatch):
        from backend_bench.backends import BackendRegistry

        class Unreachable(registered_fake):
            def connect(self):
                raise RuntimeError("no such device")

        monkeypatch.setitem(BackendRegistry._backends, "fake", Unreachable)
        output = tmp_path / "fake" / "unary.json"

        assert run_cell("fake", "unary", output, repeat_count=1) == 1
        failure = read_result_set(output).failures[("unary", "fake")]
        assert failure.kind == "PreparationFailure"
        assert "unavailable" in failure.reason
        assert "no such device" in failure.reason

    def test_execution_failure(self, tmp_path, registered_fake, monkeypatch):
        def broken_tanh(self, x):
            raise RuntimeError("illegal instruction")

        monkeypatch.setattr(registered_fake, "tanh", broken_tanh)
        output = tmp_path / "fake" / "unary.json"

        assert run_cell("fake", "unary", output, repeat_count=2) == 1
        failure = read_result_set(output).failures[("unary", "fake")]
        assert failure.kind == "ExecutionFailure"
        assert "illegal instruction" in failure.reason

    def test_overwrites_previous_artifact(self, tmp_path, registered_fake):
        output = tmp_path / "fake" / "unary.json"
        output.parent.mkdir(parents=True)
        output.write_text("stale")

        assert run_cell("fake", "unary", output, repeat_count=1) == 0
        assert read_result_set(output).success_count == 1


class TestWorkerCli:
    def test_worker_command(self, tmp_path, registered_fake):
        output = tmp_path / "unary.json"
        result = CliRunner().invoke(
            app,
            ["--backend", "fake", "--benchmark", "unary", "--output", str(output), "--repeats", "2"],
        )

        assert result.exit_code == 0
        assert len(read_result_set(output).measurements[("unary", "fake")].durations) == 2

    def test_worker_exit_status_on_failure(self, tmp_path):
        output = tmp_path / "unary.json"
        result = CliRunner().invoke(
            app,
            ["--backend", "nope", "--benchmark", "unary", "--output", str(output), "--repeats", "1"],
        )

        assert result.exit_code == 1
        assert read_result_set(output).failure_count == 1

    def test_backend_from_environment(self, tmp_path, registered_fake, monkeypatch):
        monkeypatch.setenv("BACKEND_BENCH_BACKEND", "fake")
        output = tmp_path / "unary.json"
        result = CliRunner().invoke(app, ["--benchmark", "unary", "--output", str(output), "--repeats", "1"])

        assert result.exit_code == 0

    @pytest.mark.parametrize("missing", ["--benchmark", "--output"])
    def test_required_options(self, tmp_path, missing):
        args = {"--backend": "fake", "--benchmark": "unary", "--output": str(tmp_path / "x.json")}
        del args[missing]
        argv = [item for pair in args.items() for item in pair]

        result = CliRunner().invoke(app, argv)

        assert result.exit_code == 2
