import json
import subprocess
import sys
from pathlib import Path


def run(args, cwd):
    return subprocess.run([sys.executable, *args], cwd=cwd, check=False, capture_output=True, text=True)


def test_record_verify_export_and_corrupt(tmp_path):
    repo = Path(__file__).resolve().parents[1]
    rec_dir = tmp_path / "recordings"
    export_dir = tmp_path / "export"

    # Finalized run
    r = run(["tools/sim_recording.py", str(rec_dir), "--runs", "1", "--seed", "7"], cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    rec = next(rec_dir.glob("recording-*.krec"))

    r = run(["-m", "krec_verify.cli", "file", str(rec), "--require-finalized"], cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    report = json.loads(r.stdout)
    assert report["status"] == "PASS"
    assert report["frames"] == 90
    assert report["actuators"] == 3

    r = run(["-m", "krec_export.cli", "parquet", str(rec), str(export_dir)], cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    assert "PASS: Export written" in r.stdout

    actuators = export_dir / "actuators.parquet"
    assert actuators.exists()
    assert actuators.stat().st_size > 0
    assert (export_dir / "imu.parquet").exists()

    r = run(["-m", "krec_export.cli", "show", str(rec), "--frame", "0"], cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    assert "Inference step: 1" in r.stdout

    # Corrupt and ensure failure
    r = run(["scripts/corrupt_one_byte.py", str(rec), "5"], cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout

    r = run(["-m", "krec_verify.cli", "file", str(rec)], cwd=repo)
    assert r.returncode != 0
    assert json.loads(r.stdout)["errors"][0]["code"] == "E_DECODE"

    r = run(["-m", "krec_export.cli", "parquet", str(rec), str(tmp_path / "export_fail")], cwd=repo)
    assert r.returncode != 0
    assert "FATAL" in r.stdout

    r = run(["-m", "krec_verify.cli", "file", str(rec), "--recover"], cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    assert json.loads(r.stdout)["frames"] == 89


def test_open_recording_needs_finalize_flag(tmp_path):
    repo = Path(__file__).resolve().parents[1]
    rec_dir = tmp_path / "open"

    r = run(["tools/sim_recording.py", str(rec_dir), "--open"], cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    rec = next(rec_dir.glob("recording-*.krec"))

    r = run(["-m", "krec_verify.cli", "file", str(rec)], cwd=repo)
    assert r.returncode == 0, r.stderr + r.stdout
    assert json.loads(r.stdout)["finalized"] is False

    r = run(["-m", "krec_verify.cli", "file", str(rec), "--require-finalized"], cwd=repo)
    assert r.returncode != 0
    assert json.loads(r.stdout)["errors"][0]["code"] == "E_NOT_FINALIZED"
