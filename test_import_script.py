"""CSV grouping in scripts/import_workouts.py."""
import importlib.util
from pathlib import Path

_spec = importlib.util.spec_from_file_location(
    "import_workouts", Path(__file__).parent / "scripts" / "import_workouts.py"
)
import_workouts = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(import_workouts)


def test_read_days_groups_rows_by_date(tmp_path):
    csv_file = tmp_path / "export.csv"
    csv_file.write_text(
        "date,exercise,category,weight,sets,reps\n"
        "2026-01-05,Bench Press,Chest,135 lbs,3,12\n"
        "2026-01-05,Curl,Arms,30,3,1+1\n"
        "2026-01-06,Barbell Row,Back,,,\n"
        ",Orphan,Back,10,1,1\n",
        encoding="utf-8",
    )
    days = import_workouts.read_days(str(csv_file))
    assert list(days) == ["2026-01-05", "2026-01-06"]
    assert [e["name"] for e in days["2026-01-05"]] == ["Bench Press", "Curl"]
    assert days["2026-01-05"][0]["weight"] == "135 lbs"
    row = days["2026-01-06"][0]
    assert row["weight"] is None and row["sets"] is None
