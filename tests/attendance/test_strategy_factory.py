from datetime import datetime, timedelta

from branch_attendance.attendance.factory import AttendanceStrategyFactory
from branch_attendance.attendance.strategies.early_strategy import EarlyLeaveStrategy
from branch_attendance.attendance.strategies.late_strategy import LateStrategy
from branch_attendance.attendance.strategies.normal_strategy import NormalStrategy
from branch_attendance.core.enums import AttendanceStatus

EXPECTED_START = datetime(2025, 1, 1, 9, 0)
EXPECTED_END = datetime(2025, 1, 1, 18, 0)


def test_factory_checkin_on_time_within_grace():
    now = datetime(2025, 1, 1, 9, 4, 59)

    strategy = AttendanceStrategyFactory().for_checkin(now_local=now, expected_start=EXPECTED_START, grace_minutes=5)

    assert isinstance(strategy, NormalStrategy)


def test_factory_checkin_late_after_grace():
    now = datetime(2025, 1, 1, 9, 6, 0)

    strategy = AttendanceStrategyFactory().for_checkin(now_local=now, expected_start=EXPECTED_START, grace_minutes=5)

    assert isinstance(strategy, LateStrategy)


def test_exactly_on_time_is_not_late():
    strategy = AttendanceStrategyFactory().for_checkin(now_local=EXPECTED_START, expected_start=EXPECTED_START)

    decision = strategy.decide_checkin(now_local=EXPECTED_START, expected_start=EXPECTED_START)
    assert decision.status == AttendanceStatus.PRESENT
    assert decision.late_by == timedelta(0)


def test_late_strategy_measures_from_expected_start():
    now = datetime(2025, 1, 1, 9, 20)

    decision = LateStrategy().decide_checkin(now_local=now, expected_start=EXPECTED_START)

    assert decision.status == AttendanceStatus.LATE
    assert decision.late_by == timedelta(minutes=20)


def test_factory_checkout_before_end_is_early_leave():
    now = datetime(2025, 1, 1, 16, 30)

    strategy = AttendanceStrategyFactory().for_checkout(now_local=now, expected_end=EXPECTED_END)
    decision = strategy.decide_checkout(now_local=now, expected_end=EXPECTED_END, current=AttendanceStatus.LATE)

    assert isinstance(strategy, EarlyLeaveStrategy)
    assert decision.early_by == timedelta(hours=1, minutes=30)
    assert decision.status == AttendanceStatus.LATE


def test_checkout_settles_on_break_to_present():
    now = datetime(2025, 1, 1, 18, 30)

    strategy = AttendanceStrategyFactory().for_checkout(now_local=now, expected_end=EXPECTED_END)
    decision = strategy.decide_checkout(now_local=now, expected_end=EXPECTED_END, current=AttendanceStatus.ON_BREAK)

    assert isinstance(strategy, NormalStrategy)
    assert decision.status == AttendanceStatus.PRESENT
    assert decision.early_by == timedelta(0)
