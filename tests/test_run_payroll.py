"""Month-end payroll script — argument handling."""

from datetime import date

import pytest

from scripts.run_payroll import _previous_month, parse_args


class TestRunPayrollArgs:

    def test_previous_month_wraps_year(self):
        assert _previous_month(date(2026, 1, 10)) == (12, 2025)
        assert _previous_month(date(2026, 7, 1)) == (6, 2026)

    def test_explicit_period(self):
        args = parse_args(["--month", "3", "--year", "2026", "--overwrite"])
        assert (args.month, args.year, args.overwrite) == (3, 2026, True)

    def test_month_out_of_range(self):
        with pytest.raises(SystemExit):
            parse_args(["--month", "13"])
