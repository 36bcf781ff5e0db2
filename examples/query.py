"""Query exported actuator tables - tracking error per actuator."""
from __future__ import annotations

import sys
from pathlib import Path

import duckdb


def main() -> None:
    if len(sys.argv) < 2:
        print("Usage: python query.py <export_dir> [actuator_id]")
        print("Example: python query.py export/ 1")
        sys.exit(1)

    export = Path(sys.argv[1])
    only = int(sys.argv[2]) if len(sys.argv) > 2 else None

    con = duckdb.connect(":memory:")
    con.execute(f"CREATE VIEW actuators AS SELECT * FROM '{export}/actuators.parquet'")

    # Commanded vs observed position, paired within each frame.
    sql = """
    SELECT
        s.actuator_id,
        COUNT(*) AS samples,
        AVG(ABS(c.position - s.position)) AS mean_abs_error,
        MAX(ABS(c.position - s.position)) AS max_abs_error
    FROM actuators s
    JOIN actuators c
      ON c.frame = s.frame AND c.actuator_id = s.actuator_id AND c.kind = 'command'
    WHERE s.kind = 'state' AND s.position IS NOT NULL
    """
    params = []
    if only is not None:
        sql += " AND s.actuator_id = ?"
        params.append(only)
    sql += " GROUP BY s.actuator_id ORDER BY s.actuator_id"

    print("--- Position tracking error (degrees) ---\n")

    df = con.execute(sql, params).fetchdf()
    if df.empty:
        print("No paired state/command samples found.")
    else:
        for _, row in df.iterrows():
            print(f"ACTUATOR: {row['actuator_id']}")
            print(f"  Samples: {row['samples']}")
            print(f"  Mean |error|: {row['mean_abs_error']:.3f}")
            print(f"  Max |error|: {row['max_abs_error']:.3f}")
            print()


if __name__ == "__main__":
    main()
