from uuid import uuid4

from ..utils.time import to_utc_naive, utc_now


def _escape(text):
    return (text or "").replace("\\", "\\\\").replace(";", "\\;").replace(",", "\\,").replace("\n", "\\n")


def build_ics(uid_domain, title, start, end, location="", description="", uid=None, sequence=0, cancelled=False):
    uid = uid or f"{uuid4()}@{uid_domain}"

    def to_dt(dt):
        return to_utc_naive(dt).strftime("%Y%m%dT%H%M%SZ")

    method = "CANCEL" if cancelled else "REQUEST"
    status = "CANCELLED" if cancelled else "CONFIRMED"
    ics = f"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//ATS//Interview//EN
METHOD:{method}
BEGIN:VEVENT
UID:{uid}
SEQUENCE:{sequence}
STATUS:{status}
DTSTAMP:{to_dt(utc_now())}
DTSTART:{to_dt(start)}
DTEND:{to_dt(end)}
SUMMARY:{_escape(title)}
LOCATION:{_escape(location)}
DESCRIPTION:{_escape(description)}
END:VEVENT
END:VCALENDAR"""
    return ics.replace("\n", "\r\n")


def interview_uid(interview_id, uid_domain):
    """Stable UID so reschedules and cancellations update the same calendar entry."""
    return f"interview-{interview_id}@{uid_domain}"
