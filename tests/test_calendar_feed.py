"""
Tests for the iCalendar feed renderer.
"""

from datetime import datetime, timezone

from calendar_feed import escape_text, fold_line, gigs_calendar, rehearsals_calendar

NOW = datetime(2025, 5, 1, 12, 0, tzinfo=timezone.utc)

MEMBERS = [
    {"id": "m1", "name": "Rikke"},
    {"id": "m2", "name": "Sub Bassist"},
]


def unfold(body):
    return body.replace("\r\n ", "")


class TestText:

    def test_escape(self):
        assert escape_text("a,b;c\\d\ne") == "a\\,b\\;c\\\\d\\ne"
        assert escape_text(None) == ""

    def test_fold_long_lines(self):
        line = "DESCRIPTION:" + "x" * 200
        folded = fold_line(line)
        parts = folded.split("\r\n")
        assert all(len(p.encode("utf-8")) <= 75 for p in parts)
        assert all(p.startswith(" ") for p in parts[1:])
        assert folded.replace("\r\n ", "") == line

    def test_fold_keeps_multibyte_characters_whole(self):
        line = "SUMMARY:" + "æøå" * 40
        folded = fold_line(line)
        assert all(len(p.encode("utf-8")) <= 75 for p in folded.split("\r\n"))
        assert folded.replace("\r\n ", "") == line

    def test_short_line_untouched(self):
        assert fold_line("SUMMARY:Gig") == "SUMMARY:Gig"


class TestGigsCalendar:

    def gig(self, **overrides):
        gig = {
            "id": "g1",
            "name": "Summer Party",
            "date": "2025-06-14",
            "time": "20:00",
            "venue": "Town Hall",
            "address": "Main Street 1, Aarhus",
            "lineup": [
                {"instrument": "Vocals", "memberId": "m1"},
                {"instrument": "Bass", "memberId": "m2", "isReplacement": True},
                {"instrument": "Drums", "memberId": "gone"},
            ],
        }
        gig.update(overrides)
        return gig

    def test_confirmed_event(self):
        body = unfold(gigs_calendar([self.gig()], MEMBERS, base_url="https://band.example/", now=NOW))

        assert body.startswith("BEGIN:VCALENDAR\r\n")
        assert body.endswith("END:VCALENDAR\r\n")
        assert "UID:confirmed-gigs-g1" in body
        assert "DTSTAMP:20250501T120000Z" in body
        assert "DTSTART:20250614T200000" in body
        assert "DTEND:20250614T230000" in body
        assert "SUMMARY:Summer Party" in body
        assert "STATUS:CONFIRMED" in body
        assert "LOCATION:Main Street 1\\, Aarhus" in body
        assert "- Vocals: Rikke" in body
        assert "- Bass: Sub Bassist (Replacement)" in body
        assert "- Drums: TBD" in body
        assert "View Details: https://band.example/gigs/g1" in body

    def test_pending_event(self):
        body = unfold(gigs_calendar([self.gig()], MEMBERS, pending=True, now=NOW))
        assert "UID:pending-gigs-g1" in body
        assert "SUMMARY:TBC: Summer Party" in body
        assert "STATUS:TENTATIVE" in body
        assert "View Details" not in body

    def test_all_day_when_no_time(self):
        body = gigs_calendar([self.gig(time=None)], MEMBERS, now=NOW)
        assert "DTSTART;VALUE=DATE:20250614" in body
        assert "DTEND;VALUE=DATE:20250615" in body

    def test_legacy_dotted_date(self):
        body = gigs_calendar([self.gig(date="14.06.2025")], MEMBERS, now=NOW)
        assert "DTSTART:20250614T200000" in body

    def test_lines_use_crlf(self):
        body = gigs_calendar([self.gig()], MEMBERS, now=NOW)
        assert "\n" not in body.replace("\r\n", "")


class TestRehearsalsCalendar:

    def test_end_before_start_rolls_over(self):
        body = rehearsals_calendar([{
            "id": "r1",
            "name": "Late session",
            "date": "2025-06-10",
            "startTime": "22:00",
            "endTime": "01:00",
            "location": "Basement",
            "notes": "Bring cables",
        }], now=NOW)

        assert "UID:rehearsal-r1" in body
        assert "DTSTART:20250610T220000" in body
        assert "DTEND:20250611T010000" in body
        assert "LOCATION:Basement" in body
        assert "DESCRIPTION:Bring cables" in body

    def test_empty_feed_is_valid(self):
        body = rehearsals_calendar([], now=NOW)
        assert "BEGIN:VEVENT" not in body
        assert "X-WR-CALNAME:Rehearsals" in body
