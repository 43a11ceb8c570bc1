"""iCalendar feeds for gigs and rehearsals (subscribe from any calendar app)."""
from datetime import date, datetime, timedelta, timezone

GIG_LENGTH = timedelta(hours=3)


def escape_text(value: str | None) -> str:
    value = value or ""
    return (value.replace("\\", "\\\\")
                 .replace(";", "\\;")
                 .replace(",", "\\,")
                 .replace("\r\n", "\\n")
                 .replace("\n", "\\n"))


def fold_line(line: str, limit: int = 75) -> str:
    """Fold content lines longer than 75 octets (continuation starts with a space)."""
    encoded = line.encode("utf-8")
    if len(encoded) <= limit:
        return line
    parts = []
    current = ""
    size = 0
    for ch in line:
        ch_size = len(ch.encode("utf-8"))
        max_size = limit if not parts else limit - 1
        if size + ch_size > max_size:
            parts.append(current)
            current, size = "", 0
        current += ch
        size += ch_size
    parts.append(current)
    return "\r\n ".join(parts)


def parse_event_date(value: str) -> date:
    """Gig dates are ISO; older records used DD.MM.YYYY."""
    if "." in value:
        return datetime.strptime(value, "%d.%m.%Y").date()
    return date.fromisoformat(value)


def _fmt_local(dt: datetime) -> str:
    return dt.strftime("%Y%m%dT%H%M%S")


def _event_times(day: date, start: str | None, end: str | None = None,
                 default_length: timedelta = GIG_LENGTH) -> list[str]:
    if not start:
        return [
            f"DTSTART;VALUE=DATE:{day.strftime('%Y%m%d')}",
            f"DTEND;VALUE=DATE:{(day + timedelta(days=1)).strftime('%Y%m%d')}",
        ]
    start_dt = datetime.combine(day, datetime.strptime(start, "%H:%M").time())
    if end:
        end_dt = datetime.combine(day, datetime.strptime(end, "%H:%M").time())
        if end_dt <= start_dt:
            end_dt += timedelta(days=1)
    else:
        end_dt = start_dt + default_length
    return [f"DTSTART:{_fmt_local(start_dt)}", f"DTEND:{_fmt_local(end_dt)}"]


def _calendar(name: str, description: str, events: list[list[str]], now: datetime) -> str:
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Band Setlist App//Calendar Feed//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{escape_text(name)}",
        f"X-WR-CALDESC:{escape_text(description)}",
    ]
    stamp = now.strftime("%Y%m%dT%H%M%SZ")
    for event in events:
        lines.append("BEGIN:VEVENT")
        lines.append(event[0])  # UID
        lines.append(f"DTSTAMP:{stamp}")
        lines.extend(event[1:])
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(fold_line(line) for line in lines) + "\r\n"


def gigs_calendar(gigs: list[dict], members: list[dict], *, pending: bool = False,
                  base_url: str = "", now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    names = {m["id"]: m["name"] for m in members}
    calendar_id = "pending-gigs" if pending else "confirmed-gigs"

    events = []
    for gig in gigs:
        title = f"TBC: {gig['name']}" if pending else gig["name"]
        description = [f"Venue: {gig.get('venue') or ''}"]
        if gig.get("address"):
            description.append(f"Address: {gig['address']}")
        if gig.get("notes"):
            description.append(f"Notes: {gig['notes']}")
        lineup = gig.get("lineup") or []
        if lineup:
            description.append("")
            description.append("Lineup:")
            for item in lineup:
                member_name = names.get(item.get("memberId"), "TBD")
                suffix = " (Replacement)" if item.get("isReplacement") else ""
                description.append(f"- {item.get('instrument') or ''}: {member_name}{suffix}")
        if base_url:
            description.append("")
            description.append(f"View Details: {base_url.rstrip('/')}/gigs/{gig['id']}")

        events.append([
            f"UID:{calendar_id}-{gig['id']}",
            *_event_times(parse_event_date(gig["date"]), gig.get("time")),
            f"SUMMARY:{escape_text(title)}",
            f"DESCRIPTION:{escape_text(chr(10).join(description))}",
            f"LOCATION:{escape_text(gig.get('address') or gig.get('venue'))}",
            f"STATUS:{'TENTATIVE' if pending else 'CONFIRMED'}",
        ])

    label = "Pending" if pending else "Confirmed"
    return _calendar(f"{label} Gigs", f"{label} gigs from Band Setlist App", events, now)


def rehearsals_calendar(rehearsals: list[dict], now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    events = []
    for reh in rehearsals:
        lines = [
            f"UID:rehearsal-{reh['id']}",
            *_event_times(parse_event_date(reh["date"]), reh.get("startTime"), reh.get("endTime")),
            f"SUMMARY:{escape_text(reh['name'])}",
        ]
        if reh.get("notes"):
            lines.append(f"DESCRIPTION:{escape_text(reh['notes'])}")
        if reh.get("location"):
            lines.append(f"LOCATION:{escape_text(reh['location'])}")
        events.append(lines)
    return _calendar("Rehearsals", "Band rehearsals", events, now)
