from http.server import ThreadingHTTPServer
import json
import os
import threading
import time

from tests.helpers import clone, write_json
from projections.__main__ import _SnapshotFile, main
from projections.schema import Snapshot

SNAPSHOT = "sample_snapshot.json"


def test_validate_mode_exits_zero(capsys):
    code = main(["sample_config.json", "--snapshot", SNAPSHOT, "--validate"])

    assert code == 0
    assert "Config is valid." in capsys.readouterr().out


def test_invalid_config_returns_one(tmp_path, sample_config_dict, capsys):
    data = clone(sample_config_dict)
    data["time_horizon_years"] = 45
    path = write_json(tmp_path, data)

    code = main([str(path), "--snapshot", SNAPSHOT, "--validate"])
    assert code == 1
    assert "ERROR: time_horizon_years" in capsys.readouterr().err


def test_missing_config_file_returns_two(tmp_path):
    code = main([str(tmp_path / "nope.json"), "--validate"])
    assert code == 2


def test_bad_start_date_returns_two():
    code = main(["sample_config.json", "--start", "soon"])
    assert code == 2


def test_projection_writes_calculate_response(tmp_path):
    output_path = tmp_path / "out.json"
    code = main(
        ["sample_config.json", "--snapshot", SNAPSHOT, "--start", "2026-01-01", "-o", str(output_path)]
    )

    assert code == 0
    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert len(payload["net_worth"]) == 61
    assert payload["net_worth"][0]["date"] == "2026-01-01"
    assert payload["meta"]["months"] == 60
    assert len(payload["meta"]["config_hash"]) == 12


def test_projection_without_snapshot_uses_empty_snapshot(tmp_path):
    output_path = tmp_path / "out.json"
    code = main(["sample_config.json", "-o", str(output_path)])

    assert code == 0
    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert payload["assets"][0]["value"] == 0.0


def test_summary_mode_prints_headline_numbers(tmp_path, capsys):
    output_path = tmp_path / "out.json"
    code = main(
        ["sample_config.json", "--snapshot", SNAPSHOT, "--start", "2026-01-01", "--summary", "-o", str(output_path)]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "Horizon: 2026-01-01 to 2031-01-01 (60 months)" in out
    assert "Ending net worth: $" in out
    assert "Debt-free: not within horizon" in out


def test_sweep_mode_prints_one_line_per_value(capsys):
    code = main(["sample_config.json", "--snapshot", SNAPSHOT, "--sweep", "monthly_savings_rate=0.1,0.3"])

    assert code == 0
    out = capsys.readouterr().out
    assert "Sweep over monthly_savings_rate:" in out
    assert "  0.1: net worth $" in out
    assert "  0.3: net worth $" in out


def test_bad_sweep_field_returns_two(capsys):
    code = main(["sample_config.json", "--sweep", "salary=1,2"])
    assert code == 2
    assert "Invalid sweep" in capsys.readouterr().err


def test_server_mode_serves_until_interrupted(monkeypatch, capsys):
    def _interrupt_serve_forever(self):
        raise KeyboardInterrupt

    monkeypatch.setattr(ThreadingHTTPServer, "serve_forever", _interrupt_serve_forever)
    code = main(["sample_config.json", "--snapshot", SNAPSHOT, "--server", "--port", "0"])

    assert code == 0
    assert "/projections/calculate" in capsys.readouterr().out


def test_server_mode_rejects_sweep():
    code = main(["sample_config.json", "--server", "--sweep", "annual_salary=1", "--port", "0"])
    assert code == 2


def test_sweep_with_out_of_range_or_fractional_horizon_returns_two(capsys):
    assert main(["sample_config.json", "--sweep", "time_horizon_years=2.5"]) == 2
    assert "whole years" in capsys.readouterr().err

    assert main(["sample_config.json", "--sweep", "time_horizon_years=5,40"]) == 2
    assert "time_horizon_years=40 is not valid" in capsys.readouterr().err


def test_changed_snapshot_is_reloaded_once_across_threads(tmp_path, sample_snapshot_dict, monkeypatch):
    path = write_json(tmp_path, sample_snapshot_dict, "snapshot.json")
    provider = _SnapshotFile(str(path), Snapshot())
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))

    loads = []

    def slow_load(load_path):
        loads.append(load_path)
        time.sleep(0.05)
        return Snapshot()

    monkeypatch.setattr("projections.__main__.load_snapshot", slow_load)
    barrier = threading.Barrier(6)

    def request():
        barrier.wait()
        provider()

    workers = [threading.Thread(target=request) for _ in range(6)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert loads == [str(path)]
