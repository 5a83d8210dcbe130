# test_validation.py

import unittest
from datetime import date

from cto_portal.app.applications import validation
from cto_portal.app.applications.allocation import allocate_hours
from cto_portal.app.applications.schedule import is_working_day, max_selectable_dates, min_selectable_date
from cto_portal.app.applications.schemas import AllocationEntry, ApproverRouting
from cto_portal.app.credits.schemas import CreditMemo

MONDAY = date(2026, 10, 12)
FRIDAY = date(2026, 10, 16)
SATURDAY = date(2026, 10, 17)


def memo(memo_id, remaining):
    return CreditMemo.model_validate({"id": memo_id, "creditedHours": remaining, "remainingHours": remaining})


class ScheduleTestCase(unittest.TestCase):
    def test_weekends_are_not_working_days(self):
        self.assertTrue(is_working_day(FRIDAY))
        self.assertFalse(is_working_day(SATURDAY))
        self.assertFalse(is_working_day(date(2026, 10, 18)))

    def test_lead_time_from_monday_skips_one_weekend(self):
        self.assertEqual(min_selectable_date(MONDAY), date(2026, 10, 19))

    def test_lead_time_from_friday_lands_on_next_friday(self):
        self.assertEqual(min_selectable_date(FRIDAY), date(2026, 10, 23))

    def test_lead_time_filed_on_weekend(self):
        self.assertEqual(min_selectable_date(SATURDAY), date(2026, 10, 23))

    def test_lead_time_is_configurable(self):
        self.assertEqual(min_selectable_date(FRIDAY, 1), date(2026, 10, 19))
        self.assertEqual(min_selectable_date(MONDAY, 0), MONDAY)

    def test_date_cap_rounds_up_to_whole_days(self):
        self.assertEqual(max_selectable_dates(0), 0)
        self.assertEqual(max_selectable_dates(4), 1)
        self.assertEqual(max_selectable_dates(8), 1)
        self.assertEqual(max_selectable_dates(12), 2)
        self.assertEqual(max_selectable_dates(17), 3)
        self.assertEqual(max_selectable_dates(6, hours_per_day=4), 2)


class DateSelectionTestCase(unittest.TestCase):
    def check(self, day, hours=8, chosen=()):
        return validation.ensure_date_allowed(day, requested_hours=hours, chosen=list(chosen), today=MONDAY)

    def test_requires_hours_first(self):
        with self.assertRaises(validation.HoursRequiredError) as ctx:
            self.check(date(2026, 10, 19), hours=0)
        self.assertEqual(ctx.exception.message, "Please enter requested hours first.")

    def test_rejects_dates_inside_lead_time(self):
        with self.assertRaises(validation.LeadTimeError) as ctx:
            self.check(FRIDAY)
        self.assertEqual(ctx.exception.rule, "lead_time")

    def test_accepts_first_allowed_date(self):
        self.assertTrue(self.check(date(2026, 10, 19)))

    def test_duplicate_is_a_no_op(self):
        self.assertFalse(self.check(date(2026, 10, 19), chosen=[date(2026, 10, 19)]))

    def test_cap_is_enforced(self):
        with self.assertRaises(validation.TooManyDatesError) as ctx:
            self.check(date(2026, 10, 20), hours=8, chosen=[date(2026, 10, 19)])
        self.assertEqual(ctx.exception.message, "You can only select up to 1 days for 8 hours.")

    def test_partial_day_counts_as_a_whole_day(self):
        self.assertTrue(self.check(date(2026, 10, 20), hours=12, chosen=[date(2026, 10, 19)]))


class ValidateApplicationTestCase(unittest.TestCase):
    """Filing rules checked before anything is sent upstream."""

    def setUp(self):
        self.pool = [memo("A", 4), memo("B", 8)]
        self.application = {
            "requested_hours": 10,
            "pool": self.pool,
            "allocation": allocate_hours(10, self.pool),
            "reason": "Family matter",
            "inclusive_dates": [date(2026, 10, 19), date(2026, 10, 20)],
            "routing": ApproverRouting(approver1="u1", approver2="u2", approver3="u3"),
            "today": MONDAY,
        }

    def validate(self, **changes):
        validation.validate_application(**{**self.application, **changes})

    def test_complete_application_passes(self):
        self.validate()

    def test_missing_hours(self):
        with self.assertRaises(validation.HoursRequiredError):
            self.validate(requested_hours=0, allocation=[])

    def test_request_above_balance(self):
        with self.assertRaises(validation.ExceedsBalanceError) as ctx:
            self.validate(requested_hours=13, allocation=allocate_hours(13, self.pool))
        self.assertEqual(ctx.exception.rule, "exceeds_balance")

    def test_rolled_back_memo_does_not_count_toward_balance(self):
        pool = [memo("A", 4), CreditMemo.model_validate({"id": "R", "remainingHours": 20, "status": "ROLLEDBACK"})]
        with self.assertRaises(validation.ExceedsBalanceError):
            self.validate(requested_hours=6, pool=pool, allocation=[AllocationEntry(memo_id="A", applied_hours=4)])

    def test_short_allocation_is_rejected(self):
        with self.assertRaises(validation.InsufficientMemoCreditsError) as ctx:
            self.validate(allocation=[AllocationEntry(memo_id="A", applied_hours=4)])
        self.assertEqual(ctx.exception.rule, "insufficient_memo_credits")

    def test_blank_reason(self):
        with self.assertRaises(validation.ReasonRequiredError):
            self.validate(reason="   ")

    def test_no_dates(self):
        with self.assertRaises(validation.DatesRequiredError):
            self.validate(inclusive_dates=[])

    def test_too_many_dates(self):
        with self.assertRaises(validation.TooManyDatesError):
            self.validate(inclusive_dates=[date(2026, 10, 19), date(2026, 10, 20), date(2026, 10, 21)])

    def test_date_inside_lead_time(self):
        with self.assertRaises(validation.LeadTimeError) as ctx:
            self.validate(inclusive_dates=[FRIDAY])
        self.assertEqual(ctx.exception.message, "Applications must be filed at least 5 working days in advance.")

    def test_missing_approver_levels_are_named(self):
        with self.assertRaises(validation.ApproverRoutingError) as ctx:
            self.validate(routing=ApproverRouting(approver1="", approver2="u2"))
        self.assertEqual(ctx.exception.message, "Approvers for level 1, 3 are required.")

    def test_first_failing_rule_is_reported(self):
        with self.assertRaises(validation.ReasonRequiredError):
            self.validate(reason="", inclusive_dates=[], routing=ApproverRouting())

    def test_all_errors_share_a_base_class(self):
        with self.assertRaises(validation.InputError):
            self.validate(routing=ApproverRouting())


if __name__ == "__main__":
    unittest.main()
