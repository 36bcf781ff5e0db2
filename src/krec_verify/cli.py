import json
from pathlib import Path
import click
from .logic import CANONICAL_JSON_KW, verify_recording

@click.group()
def main():
    pass

@main.command("file")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--require-finalized", is_flag=True, help="Fail recordings without a terminator record")
@click.option("--recover", is_flag=True, help="Skip corrupt records instead of failing on the first one")
def file_cmd(path: Path, require_finalized: bool, recover: bool):
    result = verify_recording(path, require_finalized=require_finalized, recover=recover)
    click.echo(json.dumps(result, **CANONICAL_JSON_KW))
    if result["status"] != "PASS":
        raise SystemExit(1)

if __name__ == "__main__":
    main()
