"""KRec Export - recordings to parquet tables and text."""
from __future__ import annotations

from pathlib import Path

import click

from krec_core.recording import Recording
from krec_export.tables import export_recording


@click.group()
def main() -> None:
    pass


@main.command("parquet")
@click.argument("recording", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("out", type=click.Path(path_type=Path))
@click.option("--recover", is_flag=True, help="Skip corrupt records instead of failing")
def parquet_cmd(recording: Path, out: Path, recover: bool) -> None:
    """Export a recording into OUT as parquet tables plus header.json."""
    click.echo(f"Exporting recording: {recording}")
    try:
        rec = Recording.load(recording, recover=recover)
        summary = export_recording(rec, out)
    except Exception as e:
        # Fail closed, with a single-line reason.
        click.echo(f"FATAL: {e}")
        raise SystemExit(1)

    click.echo(f"PASS: Export written to {out}")
    click.echo(f"  Frames: {summary['frames']}")
    click.echo(f"  Actuator rows: {summary['actuator_rows']}")
    click.echo(f"  IMU rows: {summary['imu_rows']}")


@main.command("show")
@click.argument("recording", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--frame", "frame_number", type=int, default=None, help="Show one frame in detail")
def show_cmd(recording: Path, frame_number: int | None) -> None:
    """Print a recording summary, or one frame."""
    try:
        rec = Recording.load(recording)
        text = rec.display() if frame_number is None else rec.display_frame(frame_number)
    except Exception as e:
        click.echo(f"FATAL: {e}")
        raise SystemExit(1)
    click.echo(text, nl=False)


if __name__ == "__main__":
    main()
