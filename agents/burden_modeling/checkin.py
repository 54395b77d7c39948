"""
Check-in assessment and staff prompts.

Patients answer a short check-in every 20 minutes. This module turns one
answer into staff actions, and turns a patient's running state into the
disengagement warning and the suggested action shown on the staff board.

The clock is always passed in. Nothing here reads the current time.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from .config import MATCHED_CONTROL_MEDIAN_TO_PHYSICIAN_MINUTES
from .model import CheckInResponse, has_intent_to_leave
from .vulnerability import VulnerabilityProfile

logger = logging.getLogger(__name__)

NEXT_CHECK_IN_MINUTES = 20
HIGH_DISCOMFORT_LEVEL = 4

# Disengagement warning triggers
WARNING_WAIT_MINUTES = MATCHED_CONTROL_MEDIAN_TO_PHYSICIAN_MINUTES
WARNING_BURDEN = 70
CREDIBLE_RISK_BURDEN = 55

OUTREACH_ACTION = "Immediate staff outreach - credible disengagement risk"
OPTIONAL_CHECK_ACTION = "Accessibility check (optional)"
MONITOR_ACTION = "Monitor"

FLAG_ACTIONS = [
    ("language", "Interpreter available"),
    ("mobility", "Mobility assistance"),
    ("sensory", "Quiet space offered"),
    ("cognitive", "Clear communication check"),
]


@dataclass(frozen=True)
class CheckInAssessment:
    """What staff should do about a single check-in."""
    accepted: bool
    risk_elevated: bool
    suggested_actions: List[str] = field(default_factory=list)
    next_check_in_minutes: int = NEXT_CHECK_IN_MINUTES


def parse_timestamp(value) -> Optional[datetime]:
    """ISO-8601 string or datetime to an aware datetime; naive means UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Unparseable check-in timestamp: {text!r}")
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def assess_check_in(
    check_in: CheckInResponse,
    next_check_in_minutes: int = NEXT_CHECK_IN_MINUTES,
) -> CheckInAssessment:
    """
    Flag elevated risk and list staff actions for one check-in.

    Risk is elevated on high discomfort (4 or 5) or a stated intent to leave.
    """
    high_discomfort = (
        check_in.discomfort_level is not None
        and check_in.discomfort_level >= HIGH_DISCOMFORT_LEVEL
    )
    leaving = check_in.intends_to_stay is False

    actions = []
    if high_discomfort:
        actions.append("check-in-recommended")
    if "interpreter" in check_in.assistance_requested:
        actions.append("interpreter-page-suggested")
    if "quiet-space" in check_in.assistance_requested:
        actions.append("quiet-space-availability-check")
    if leaving:
        actions.append("staff-alert-intent-to-leave")

    return CheckInAssessment(
        accepted=True,
        risk_elevated=high_discomfort or leaving,
        suggested_actions=actions,
        next_check_in_minutes=next_check_in_minutes,
    )


def has_missed_check_in(
    last_timestamp,
    now: datetime,
    interval_minutes: int = NEXT_CHECK_IN_MINUTES,
) -> bool:
    """True when the last check-in is older than the interval. No check-in is not missed."""
    last = parse_timestamp(last_timestamp)
    if last is None:
        return False
    return parse_timestamp(now) - last > timedelta(minutes=interval_minutes)


def _credible_risk(
    wait_time_minutes: float,
    burden: float,
    check_ins: Sequence[CheckInResponse],
    now: datetime,
    interval_minutes: int,
) -> bool:
    # missed check-in, past typical physician access, elevated burden
    if not check_ins:
        return False
    return (
        has_missed_check_in(check_ins[-1].timestamp, now, interval_minutes)
        and wait_time_minutes > WARNING_WAIT_MINUTES
        and burden > CREDIBLE_RISK_BURDEN
    )


def should_show_disengagement_warning(
    wait_time_minutes: float,
    burden: float,
    check_ins: Sequence[CheckInResponse],
    now: datetime,
    interval_minutes: int = NEXT_CHECK_IN_MINUTES,
) -> bool:
    """Any direct trigger, or the credible-risk pattern."""
    if wait_time_minutes >= WARNING_WAIT_MINUTES:
        return True
    if has_intent_to_leave(check_ins):
        return True
    if burden >= WARNING_BURDEN:
        return True
    return _credible_risk(wait_time_minutes, burden, check_ins, now, interval_minutes)


def suggest_staff_action(
    wait_time_minutes: float,
    burden: float,
    check_ins: Sequence[CheckInResponse],
    profile: VulnerabilityProfile,
    now: datetime,
    interval_minutes: int = NEXT_CHECK_IN_MINUTES,
) -> str:
    """
    One line of guidance for the staff board.

    Outreach beats everything; early in the wait an optional accessibility
    check is offered; otherwise actions follow the patient's flags.
    """
    if _credible_risk(wait_time_minutes, burden, check_ins, now, interval_minutes):
        return OUTREACH_ACTION

    last = check_ins[-1] if check_ins else None
    if wait_time_minutes < WARNING_WAIT_MINUTES and (last is None or last.intends_to_stay is not False):
        return OPTIONAL_CHECK_ACTION

    actions = [text for flag, text in FLAG_ACTIONS if getattr(profile, flag)]
    return ", ".join(actions) if actions else MONITOR_ACTION
