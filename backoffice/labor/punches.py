"""
backoffice.labor.punches — Turning raw time-clock punches into worked time.

Two views of the same punch stream are offered:

* ``parse_work_periods`` is the payroll view.  It deduplicates repeated
  clock punches, splits shifts around breaks and reports shifts that cannot
  be paid as-is (missing clock-in/out, implausibly long).
* ``normalize_punches`` / ``identify_work_sessions`` is the review view used
  by the time-punch screen.  It flags noise (bursts, duplicates, cancelled
  breaks) and builds sessions annotated with human-readable anomalies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from backoffice import config
from backoffice.core.constants import (
    BURST_PUNCH_COUNT, MIN_SESSION_MINUTES, NOISE_WINDOW_SECONDS,
)
from backoffice.domain.enums import IncompleteShiftType, PunchType
from backoffice.domain.models import TimePunch

logger = logging.getLogger(__name__)


@dataclass
class WorkPeriod:
    start_time: datetime
    end_time: datetime
    hours: float
    is_break: bool = False


@dataclass
class IncompleteShift:
    type: IncompleteShiftType
    punch_type: PunchType
    punch_time: datetime
    message: str
    employee_id: Optional[str] = None


@dataclass
class ProcessedPunch:
    punch: TimePunch
    is_noise: bool = False
    noise_reason: Optional[str] = None

    @property
    def punch_type(self) -> PunchType:
        return self.punch.punch_type

    @property
    def punch_time(self) -> datetime:
        return self.punch.punch_time


@dataclass
class BreakPeriod:
    break_start: datetime
    break_end: Optional[datetime] = None
    duration_minutes: int = 0
    is_complete: bool = False


@dataclass
class WorkSession:
    session_id: str
    employee_id: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    breaks: List[BreakPeriod] = field(default_factory=list)
    total_minutes: int = 0
    break_minutes: int = 0
    worked_minutes: int = 0
    is_complete: bool = False
    anomalies: List[str] = field(default_factory=list)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomalies)


@dataclass
class DailyHours:
    date: date
    employee_id: str
    sessions: List[WorkSession] = field(default_factory=list)
    total_worked_hours: float = 0.0
    total_break_hours: float = 0.0
    total_hours: float = 0.0
    punch_count: int = 0


def _sorted(punches: Iterable[TimePunch]) -> List[TimePunch]:
    return sorted(punches, key=lambda p: p.punch_time)


def _hours(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600.0


def _whole_minutes(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


# ---------------------------------------------------------------------------
# Payroll view
# ---------------------------------------------------------------------------

def deduplicate_punches(
    punches: List[TimePunch],
    window_seconds: int = config.PUNCH_DUPLICATE_WINDOW_SECONDS,
) -> List[TimePunch]:
    """Collapse runs of same-type punches that are within *window_seconds*.

    The last punch of each run is kept, so a corrected clock-in supersedes
    an accidental earlier one.  Expects chronologically sorted input.
    """
    result: List[TimePunch] = []
    window = timedelta(seconds=window_seconds)
    for punch in punches:
        if (
            result
            and result[-1].punch_type == punch.punch_type
            and punch.punch_time - result[-1].punch_time < window
        ):
            result[-1] = punch
        else:
            result.append(punch)
    return result


def parse_work_periods(
    punches: Iterable[TimePunch],
    max_shift_hours: float = config.SHIFT_MAX_HOURS,
) -> Tuple[List[WorkPeriod], List[IncompleteShift]]:
    """Convert one employee's punches into work and break periods.

    Returns ``(periods, incomplete_shifts)``.  Work is split around breaks,
    so a shift with one break yields two work periods and one break period.
    Shifts that are missing a clock-in or clock-out, or that run longer
    than *max_shift_hours*, produce no periods and are reported instead.
    """
    periods: List[WorkPeriod] = []
    incomplete: List[IncompleteShift] = []

    clock_in: Optional[TimePunch] = None
    segment_start: Optional[datetime] = None
    break_start: Optional[datetime] = None
    shift_periods: List[WorkPeriod] = []

    def _flag(kind: IncompleteShiftType, punch: TimePunch, message: str) -> None:
        incomplete.append(IncompleteShift(
            type=kind,
            punch_type=punch.punch_type,
            punch_time=punch.punch_time,
            message=message,
            employee_id=punch.employee_id,
        ))

    for punch in deduplicate_punches(_sorted(punches)):
        ptype = punch.punch_type
        now = punch.punch_time

        if ptype == PunchType.CLOCK_IN:
            if clock_in is not None:
                if break_start is not None:
                    # clock-in while on break ends the break
                    shift_periods.append(WorkPeriod(break_start, now, _hours(break_start, now), True))
                    break_start = None
                    segment_start = now
                    continue
                _flag(IncompleteShiftType.MISSING_CLOCK_OUT, clock_in,
                      "Clock-in without a matching clock-out")
            clock_in, segment_start, break_start, shift_periods = punch, now, None, []

        elif ptype == PunchType.CLOCK_OUT:
            if clock_in is None:
                _flag(IncompleteShiftType.MISSING_CLOCK_IN, punch,
                      "Clock-out without a matching clock-in")
                continue
            if _hours(clock_in.punch_time, now) > max_shift_hours:
                _flag(IncompleteShiftType.SHIFT_TOO_LONG, clock_in,
                      f"Shift longer than {max_shift_hours:g} hours")
            else:
                if break_start is not None:
                    shift_periods.append(WorkPeriod(break_start, now, _hours(break_start, now), True))
                elif now > segment_start:
                    shift_periods.append(WorkPeriod(segment_start, now, _hours(segment_start, now)))
                periods.extend(shift_periods)
            clock_in, segment_start, break_start, shift_periods = None, None, None, []

        elif ptype == PunchType.BREAK_START:
            if clock_in is not None and break_start is None:
                if now > segment_start:
                    shift_periods.append(WorkPeriod(segment_start, now, _hours(segment_start, now)))
                break_start = now

        elif ptype == PunchType.BREAK_END:
            if break_start is not None:
                shift_periods.append(WorkPeriod(break_start, now, _hours(break_start, now), True))
                break_start = None
                segment_start = now

    if clock_in is not None:
        _flag(IncompleteShiftType.MISSING_CLOCK_OUT, clock_in,
              "Clock-in without a matching clock-out")

    if incomplete:
        logger.debug("parse_work_periods: %d incomplete shift(s)", len(incomplete))
    return periods, incomplete


def calculate_worked_hours_with_anomalies(
    punches: Iterable[TimePunch],
) -> Tuple[float, List[IncompleteShift]]:
    """Total paid hours (breaks excluded) plus the shifts that were skipped."""
    periods, incomplete = parse_work_periods(punches)
    hours = sum(p.hours for p in periods if not p.is_break)
    return hours, incomplete


def calculate_worked_hours(punches: Iterable[TimePunch]) -> float:
    return calculate_worked_hours_with_anomalies(punches)[0]


# ---------------------------------------------------------------------------
# Review view
# ---------------------------------------------------------------------------

def normalize_punches(punches: Iterable[TimePunch]) -> List[ProcessedPunch]:
    """Sort punches and mark noise.

    Punches landing within 60 seconds of a group's first punch form a group.
    Groups of three or more are bursts: the first punch is kept.  A pair of
    break-start then clock-in is a cancelled break: the break-start is
    noise.  Any other pair keeps the first punch and marks the second as a
    duplicate.
    """
    ordered = _sorted(punches)
    window = timedelta(seconds=NOISE_WINDOW_SECONDS)
    processed: List[ProcessedPunch] = []

    i = 0
    while i < len(ordered):
        first = ordered[i]
        j = i + 1
        while j < len(ordered) and ordered[j].punch_time - first.punch_time < window:
            j += 1
        group = ordered[i:j]

        if len(group) >= BURST_PUNCH_COUNT:
            processed.append(ProcessedPunch(group[0]))
            processed.extend(
                ProcessedPunch(p, True, "Burst noise (>3 punches in 60s)") for p in group[1:]
            )
        elif len(group) == 2:
            a, b = group
            if a.punch_type == PunchType.BREAK_START and b.punch_type == PunchType.CLOCK_IN:
                processed.append(ProcessedPunch(a, True, "Break canceled"))
                processed.append(ProcessedPunch(b))
            else:
                processed.append(ProcessedPunch(a))
                processed.append(ProcessedPunch(b, True, "Duplicate punch within 60s"))
        else:
            processed.append(ProcessedPunch(first))
        i = j

    return processed


def _close_break(session: WorkSession, start: datetime, end: datetime) -> None:
    session.breaks.append(BreakPeriod(
        break_start=start,
        break_end=end,
        duration_minutes=_whole_minutes(start, end),
        is_complete=True,
    ))


def _build_session(punches: List[ProcessedPunch], i: int, prior_sessions: int) -> Tuple[WorkSession, int]:
    """Build the session opened by ``punches[i]``; return it and the next index."""
    opener = punches[i].punch
    session = WorkSession(
        session_id=f"{opener.employee_id}-{int(opener.punch_time.timestamp() * 1000)}",
        employee_id=opener.employee_id,
        clock_in=opener.punch_time,
    )
    break_start: Optional[datetime] = None

    j = i + 1
    while j < len(punches):
        ptype = punches[j].punch_type
        now = punches[j].punch_time

        if session.clock_out is not None:
            if ptype == PunchType.CLOCK_IN:
                break
            j += 1
            continue

        if ptype == PunchType.CLOCK_OUT:
            session.clock_out = now
            session.is_complete = True
            if _whole_minutes(session.clock_in, now) < MIN_SESSION_MINUTES and prior_sessions > 0:
                session.anomalies.append("Very short session (< 3 min) - possible error")
        elif ptype == PunchType.BREAK_START:
            break_start = now
        elif ptype == PunchType.BREAK_END and break_start is not None:
            _close_break(session, break_start, now)
            break_start = None
        elif ptype == PunchType.CLOCK_IN:
            if break_start is not None:
                # some terminals record the end of a break as a clock-in
                _close_break(session, break_start, now)
                break_start = None
            else:
                session.anomalies.append("Missing clock out")
                break
        j += 1

    if break_start is not None and session.clock_out is not None:
        session.breaks.append(BreakPeriod(break_start=break_start))
        session.anomalies.append("Incomplete break (missing break end)")

    if session.clock_out is not None:
        session.total_minutes = _whole_minutes(session.clock_in, session.clock_out)
        session.break_minutes = sum(b.duration_minutes for b in session.breaks)
        session.worked_minutes = session.total_minutes - session.break_minutes
    else:
        session.anomalies.append("Incomplete session (missing clock out)")

    return session, j


def identify_work_sessions(processed: Iterable[ProcessedPunch]) -> List[WorkSession]:
    """Group non-noise punches into sessions per employee.

    A session opens at a clock-in and closes at the first following
    clock-out.  Punches before the first clock-in are ignored.
    """
    by_employee: Dict[str, List[ProcessedPunch]] = {}
    for p in processed:
        if not p.is_noise:
            by_employee.setdefault(p.punch.employee_id, []).append(p)

    sessions: List[WorkSession] = []
    for punches in by_employee.values():
        i = 0
        while i < len(punches):
            if punches[i].punch_type != PunchType.CLOCK_IN:
                i += 1
                continue
            session, i = _build_session(punches, i, len(sessions))
            sessions.append(session)
    return sessions


def calculate_daily_hours(sessions: Iterable[WorkSession], day: date) -> Dict[str, DailyHours]:
    """Per-employee totals for sessions that start on *day*."""
    daily: Dict[str, DailyHours] = {}
    for session in sessions:
        if session.clock_in.date() != day:
            continue
        entry = daily.setdefault(session.employee_id, DailyHours(date=day, employee_id=session.employee_id))
        entry.sessions.append(session)
        entry.total_worked_hours += session.worked_minutes / 60
        entry.total_break_hours += session.break_minutes / 60
        entry.total_hours += session.total_minutes / 60
        entry.punch_count += 2 + len(session.breaks) * 2
    return daily


@dataclass
class PunchProcessingResult:
    processed_punches: List[ProcessedPunch]
    sessions: List[WorkSession]
    total_noise_punches: int
    total_anomalies: int


def process_punches_for_period(punches: Iterable[TimePunch]) -> PunchProcessingResult:
    processed = normalize_punches(punches)
    sessions = identify_work_sessions(processed)
    return PunchProcessingResult(
        processed_punches=processed,
        sessions=sessions,
        total_noise_punches=sum(1 for p in processed if p.is_noise),
        total_anomalies=sum(1 for s in sessions if s.has_anomalies),
    )
