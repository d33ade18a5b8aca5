"""Tests for the plan_schedule.py command-line entry point."""

import pytest

import plan_schedule


class TestMain:
    @pytest.mark.asyncio
    async def test_plan_only(self, capsys):
        code = await plan_schedule.main(
            ["--start", "2024-01-01", "--end", "2024-01-07", "--cadence", "5"]
        )
        assert code == 0
        out = capsys.readouterr().out
        assert "Total Posts: 5" in out

    @pytest.mark.asyncio
    async def test_csv_merge_and_summary_file(self, tmp_path, capsys):
        csv_path = tmp_path / "posts.csv"
        csv_path.write_text(
            "date,starterText\n2024-01-01,Fish tacos\n,Burger night\n", encoding="utf-8"
        )
        summary_path = tmp_path / "summary.txt"
        code = await plan_schedule.main(
            [
                "--start", "2024-01-01",
                "--end", "2024-01-07",
                "--cadence", "5",
                "--csv", str(csv_path),
                "--summary-out", str(summary_path),
            ]
        )
        assert code == 0
        text = summary_path.read_text(encoding="utf-8")
        assert "Total Posts: 2" in text
        assert "  - Manual dates: 1" in text

    @pytest.mark.asyncio
    async def test_rejected_import_exits_nonzero(self, tmp_path, capsys):
        csv_path = tmp_path / "posts.csv"
        csv_path.write_text(
            "date,starterText\n2024-01-03,A\n2024-01-03,B\n", encoding="utf-8"
        )
        code = await plan_schedule.main(
            [
                "--start", "2024-01-01",
                "--end", "2024-01-07",
                "--cadence", "5",
                "--csv", str(csv_path),
            ]
        )
        assert code == 1
        assert "Duplicate manual date 01/03/2024" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_bad_cadence_exits_nonzero(self):
        code = await plan_schedule.main(
            ["--start", "2024-01-01", "--end", "2024-01-07", "--cadence", "9"]
        )
        assert code == 1

    @pytest.mark.asyncio
    async def test_bad_date_exits_nonzero(self):
        code = await plan_schedule.main(
            ["--start", "01/01/2024", "--end", "2024-01-07", "--cadence", "3"]
        )
        assert code == 1
