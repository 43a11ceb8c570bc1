from datetime import datetime
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas as _rl_canvas

from setlist_builder import fmt_mmss, total_duration


MARGIN = 0.75 * inch


# --- ReportLab canvas with "Page N of M" footers ---
class NumberedCanvas(_rl_canvas.Canvas):
    """Buffers every page so the footer can show the final page count."""

    def __init__(self, *args, footer_left: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self._pages = []
        self.footer_left = footer_left  # e.g. "Friday gig · printed Oct 11, 2025"

    def showPage(self):
        self._pages.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._pages)
        for state in self._pages:
            self.__dict__.update(state)
            self._footer(page_count)
            super().showPage()
        super().save()

    def _footer(self, page_count: int):
        page_width = self._pagesize[0]
        y = max(MARGIN - 0.45 * inch, 0.3 * inch)
        self.setFont("Helvetica", 9)
        if self.footer_left:
            self.drawString(MARGIN, y, self.footer_left)
        self.drawRightString(page_width - MARGIN, y, f"Page {self.getPageNumber()} of {page_count}")


def _song_line(song: dict) -> str:
    line = f"{song.get('position', '')}. {song.get('title') or 'Untitled'}"
    if song.get("artist"):
        line += f" - {song['artist']}"
    return line


def _song_details(song: dict) -> str:
    bits = []
    if song.get("key"):
        bits.append(f"Key: {song['key']}")
    if song.get("vocalist"):
        bits.append(f"Vocal: {song['vocalist']}")
    if song.get("bassGuitar"):
        bits.append(f"Bass: {song['bassGuitar']}")
    if song.get("guitar"):
        bits.append(f"Guitar: {song['guitar']}")
    return "  ·  ".join(bits)


def render_setlist_pdf(title: str, sections: list[tuple[str | None, list[dict]]],
                       subtitle: str | None = None) -> bytes:
    """
    Render one or more hydrated sets to a printable PDF.

    ``sections`` is a list of ``(section name, songs)``; a single set passes
    ``None`` as its name. Instrument changes between consecutive songs are
    flagged in the margin.
    """
    buf = BytesIO()
    c = NumberedCanvas(buf, pagesize=A4, footer_left=f"{title} · printed {datetime.now():%b %d, %Y}")

    width, height = A4
    margin = MARGIN
    y = height - margin

    def ensure_room(needed: float):
        nonlocal y
        if y - needed < margin:
            c.showPage()
            y = height - margin

    c.setFont("Helvetica-Bold", 18)
    c.drawString(margin, y, title)
    y -= 22
    all_songs = [s for _, songs in sections for s in songs]
    c.setFont("Helvetica", 10)
    summary = f"{len(all_songs)} songs · {fmt_mmss(int(round(total_duration(all_songs) * 60)))}"
    if subtitle:
        summary = f"{subtitle}   |   {summary}"
    for chunk in simpleSplit(summary, "Helvetica", 10, width - 2 * margin):
        c.drawString(margin, y, chunk)
        y -= 13
    y -= 10

    for name, songs in sections:
        if name:
            ensure_room(30)
            c.setFont("Helvetica-Bold", 13)
            c.drawString(margin, y, name)
            c.setFont("Helvetica", 9)
            c.drawRightString(width - margin, y, fmt_mmss(int(round(total_duration(songs) * 60))))
            y -= 18

        prev = None
        for song in songs:
            ensure_room(32)
            if prev is not None:
                changes = []
                if prev.get("bassGuitar") != song.get("bassGuitar"):
                    changes.append(f"Bass: {prev.get('bassGuitar') or '-'} -> {song.get('bassGuitar') or '-'}")
                if prev.get("guitar") != song.get("guitar"):
                    changes.append(f"Guitar: {prev.get('guitar') or '-'} -> {song.get('guitar') or '-'}")
                if changes:
                    c.setFont("Helvetica-Oblique", 8)
                    c.drawString(margin + 12, y, "Instrument change: " + ", ".join(changes))
                    y -= 11

            c.setFont("Helvetica-Bold", 11)
            c.drawString(margin, y, _song_line(song))
            c.setFont("Helvetica", 10)
            c.drawRightString(width - margin, y, song.get("duration") or "")
            y -= 13
            details = _song_details(song)
            if details:
                c.setFont("Helvetica", 8)
                c.drawString(margin + 12, y, details)
                y -= 11
            y -= 4
            prev = song
        y -= 8

    c.showPage()
    c.save()
    return buf.getvalue()
