"""
SLA clock for movements.

Pure functions: the current time is always passed in explicitly, nothing
here reads the wall clock or touches the database. The SLA snapshot is
never stored; callers recompute it whenever a movement is read.
"""
import math
from datetime import timedelta

from django.conf import settings

SLA_ON_TRACK = 'ON_TRACK'
SLA_AT_RISK = 'AT_RISK'
SLA_BREACHED = 'BREACHED'
SLA_MET = 'MET'

SLA_STATUS_CHOICES = [
    (SLA_ON_TRACK, 'On Track'),
    (SLA_AT_RISK, 'At Risk'),
    (SLA_BREACHED, 'Breached'),
    (SLA_MET, 'Met'),
]

HOUR = timedelta(hours=1)


def at_risk_percent():
    return settings.MOVEMENT_SLA.get('AT_RISK_PERCENT', 80)


def deadline_for(request_date, sla_hours):
    """Deadline of a movement requested at request_date with an sla_hours window"""
    return request_date + timedelta(hours=sla_hours)


def completion_time(movement):
    """
    Moment a completed movement finished: the receipt timestamp, falling back
    to the last update of the row. None when neither is known.
    """
    return movement.received_at or getattr(movement, 'updated_at', None)


def classify_active(percent_elapsed):
    """SLA status of a movement that is still in flight"""
    if percent_elapsed >= 100:
        return SLA_BREACHED
    if percent_elapsed >= at_risk_percent():
        return SLA_AT_RISK
    return SLA_ON_TRACK


def met_deadline(request_date, sla_hours, finished_at):
    return finished_at is not None and finished_at <= deadline_for(request_date, sla_hours)


def calculate_sla_status(movement, now):
    """
    Compute the SLA snapshot of a movement at `now`.

    Returns a dict with sla_status, deadline_date, elapsed_hours,
    remaining_hours and percent_elapsed. elapsed_hours is raw and can be
    negative when the request is dated in the future; percent_elapsed is
    clamped to 0..100 for display.
    """
    request_date = movement.request_date
    window = movement.sla_hours * HOUR
    deadline = request_date + window
    elapsed = now - request_date
    percent = (elapsed / window) * 100

    if movement.status == 'COMPLETED':
        finished = met_deadline(request_date, movement.sla_hours, completion_time(movement))
        sla_status = SLA_MET if finished else SLA_BREACHED
    else:
        sla_status = classify_active(percent)

    return {
        'sla_status': sla_status,
        'deadline_date': deadline,
        'elapsed_hours': math.floor(elapsed / HOUR),
        'remaining_hours': max(0, math.ceil((deadline - now) / HOUR)),
        'percent_elapsed': max(0, min(100, round(percent))),
    }


def annotate_sla(movement, now):
    """Attach a freshly computed snapshot as movement.sla and return the movement"""
    movement.sla = calculate_sla_status(movement, now)
    return movement
