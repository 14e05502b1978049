"""
Unit tests for inspection date rules.

Tests cover:
- Date parsing helper
- Future dates
- Early inspections with and without the override
"""

from datetime import date, datetime

import pytest

from app.core.errors import WorkflowError
from app.services.inspections import check_inspection_date, to_date

TODAY = date(2025, 6, 20)
SCHEDULED = date(2025, 6, 18)


class TestToDate:
    def test_accepts_date_datetime_and_strings(self):
        assert to_date(date(2025, 1, 2)) == date(2025, 1, 2)
        assert to_date(datetime(2025, 1, 2, 10, 30)) == date(2025, 1, 2)
        assert to_date("2025-01-02") == date(2025, 1, 2)
        assert to_date("2025-01-02T10:30:00Z") == date(2025, 1, 2)

    def test_rejects_garbage(self):
        with pytest.raises(WorkflowError, match="Invalid date"):
            to_date("next tuesday")


class TestCheckInspectionDate:
    """Reported inspection date against the scheduled one."""

    def test_on_schedule_returns_no_remark(self):
        assert check_inspection_date(SCHEDULED, SCHEDULED, False, None, today=TODAY) is None

    def test_late_inspection_is_fine(self):
        assert check_inspection_date(TODAY, SCHEDULED, False, None, today=TODAY) is None

    def test_future_date_rejected(self):
        with pytest.raises(WorkflowError, match="future"):
            check_inspection_date(date(2025, 6, 21), SCHEDULED, False, None, today=TODAY)

    def test_early_without_override_rejected(self):
        with pytest.raises(WorkflowError, match="override"):
            check_inspection_date(date(2025, 6, 15), SCHEDULED, False, None, today=TODAY)

    def test_early_beyond_window_rejected(self):
        """More than seven days early is refused even with the override."""
        with pytest.raises(WorkflowError, match="at most 7 days"):
            check_inspection_date(
                date(2025, 6, 10),
                SCHEDULED,
                True,
                "Owner travelling abroad on the scheduled date",
                today=TODAY,
            )

    def test_early_with_short_reason_rejected(self):
        with pytest.raises(WorkflowError, match="at least 15 characters"):
            check_inspection_date(date(2025, 6, 15), SCHEDULED, True, "  too short  ", today=TODAY)

    def test_early_with_override_returns_remark(self):
        """An accepted early inspection returns the remark to append."""
        # Act
        remark = check_inspection_date(
            date(2025, 6, 11),
            SCHEDULED,
            True,
            " Road closure expected on scheduled day ",
            today=TODAY,
        )

        # Assert
        assert remark == "[Early inspection override: Road closure expected on scheduled day]"
