"""Plain-text report formatter."""

from datetime import date
from typing import List, Optional

from .fetch import WeatherResponse
from .ranking import DayRankings, MultiDayScoredResort
from .resorts import open_piste_percentage
from .score import ScoreBreakdown, ScoredResort

WEEKDAYS_FR = {0: "lun.", 1: "mar.", 2: "mer.", 3: "jeu.", 4: "ven.", 5: "sam.", 6: "dim."}
MONTHS_FR = {
    1: "janv.", 2: "févr.", 3: "mars", 4: "avr.", 5: "mai", 6: "juin",
    7: "juil.", 8: "août", 9: "sept.", 10: "oct.", 11: "nov.", 12: "déc.",
}
MEDALS = ["🥇", "🥈", "🥉"]

BREAKDOWN_LABELS = [
    ("recent_snowfall", "Neige 48h"),
    ("snow_depth", "Profondeur"),
    ("forecast_snowfall", "Neige prévue"),
    ("piste_openings", "Pistes ouvertes"),
    ("wind", "Vent"),
    ("temperature", "Température"),
    ("sunshine", "Soleil"),
]


def format_day_label(iso_date: str, today: date) -> str:
    """Label for a forecast day: "Aujourd'hui", "Demain" or e.g. "lun. 9 déc."."""
    d = date.fromisoformat(iso_date[:10])
    diff_days = (d - today).days
    if diff_days == 0:
        return "Aujourd'hui"
    if diff_days == 1:
        return "Demain"
    return f"{WEEKDAYS_FR[d.weekday()]} {d.day} {MONTHS_FR[d.month]}"


def score_band(score: float) -> str:
    """Colour band of a score: low (<33), medium (<66), high."""
    if score < 33:
        return "low"
    if score < 66:
        return "medium"
    return "high"


def format_breakdown(breakdown: ScoreBreakdown) -> str:
    """One line per factor."""
    return "\n".join(
        f"  {label}: {getattr(breakdown, field):.0f}/100"
        for field, label in BREAKDOWN_LABELS
    )


def format_resort_line(scored: ScoredResort) -> str:
    """Compact ranking line."""
    r = scored.resort
    return f"#{scored.rank} {r.name} ({r.region}) — {scored.score}/100 [{score_band(scored.score)}]"


def format_resort_block(scored: ScoredResort) -> str:
    """Detailed block for a podium resort."""
    r = scored.resort
    medal = MEDALS[scored.rank - 1] if 1 <= scored.rank <= len(MEDALS) else f"#{scored.rank}"
    lines = [
        f"{medal} {r.name} — {scored.score}/100",
        f"  {r.region}, altitude {r.elevation:.0f}m",
        format_breakdown(scored.breakdown),
    ]
    return "\n".join(lines)


def format_rankings(rankings: DayRankings, today: date, top_n: int = 3) -> str:
    """Format a day ranking: podium blocks followed by the full list."""
    if rankings.date:
        header = f"🏔️ Meilleures stations — {format_day_label(rankings.date, today)} ({rankings.date})"
    else:
        header = "🏔️ Meilleures stations"
    lines = [header, ""]

    if not rankings.resorts:
        lines.append("❌ Aucune station.")
        return "\n".join(lines)

    for scored in rankings.resorts[:top_n]:
        lines.append(format_resort_block(scored))
        lines.append("")

    lines.append(f"Toutes les stations ({len(rankings.resorts)}):")
    lines.extend(format_resort_line(s) for s in rankings.resorts)
    return "\n".join(lines)


def _fmt(value: Optional[float], fmt_spec: str) -> str:
    return format(value if value is not None else 0, fmt_spec)


def format_forecast_table(weather: WeatherResponse) -> str:
    """5-day forecast table: date, snow, max/min temperature, sunshine."""
    daily = weather.daily
    lines = [f"{'Date':<12}{'Neige':>9}{'T max':>9}{'T min':>9}{'Soleil':>9}"]
    for idx, day in enumerate(daily.time):
        snow = daily.snowfall_sum[idx] if idx < len(daily.snowfall_sum) else None
        t_max = daily.temperature_2m_max[idx] if idx < len(daily.temperature_2m_max) else None
        t_min = daily.temperature_2m_min[idx] if idx < len(daily.temperature_2m_min) else None
        sun = daily.sunshine_duration[idx] if idx < len(daily.sunshine_duration) else None
        lines.append(
            f"{day:<12}"
            f"{_fmt(snow, '.1f') + ' cm':>9}"
            f"{_fmt(t_max, '.1f') + '°C':>9}"
            f"{_fmt(t_min, '.1f') + '°C':>9}"
            f"{_fmt((sun or 0) / 3600, '.1f') + ' h':>9}"
        )
    return "\n".join(lines)


def format_resort_detail(entry: MultiDayScoredResort, today: date) -> str:
    """Resort page: piste info, score per day and the forecast table."""
    r = entry.resort
    lines: List[str] = [
        f"⛷️ {r.name} ({r.region})",
        f"Altitude: {r.elevation:.0f}m",
        f"Pistes: {r.piste_info.open:.0f} / {r.piste_info.total:.0f} km ouvertes "
        f"({open_piste_percentage(r)}%)",
        "",
        "Scores par jour:",
    ]
    for ds in entry.day_scores:
        label = format_day_label(ds.date, today) if ds.date else f"Jour {ds.day}"
        lines.append(f"  {label}: {ds.score}/100 [{score_band(ds.score)}]")

    lines.append("")
    lines.append("Prévisions 5 jours:")
    lines.append(format_forecast_table(entry.weather))
    return "\n".join(lines)
