from __future__ import annotations

from datetime import date, datetime, timezone, tzinfo

from .domain import Season, SeasonStatus, SeasonView


def local_today(tz: tzinfo | None = None) -> date:
    return datetime.now(tz or timezone.utc).date()


def season_status(
    season: Season, today: date | None = None, tz: tzinfo | None = None
) -> SeasonStatus:
    """日付単位で開催状況を判定する。開始日・終了日のどちらかが無ければ unknown。

    today を省略した場合は tz (運営地のタイムゾーン) での今日を使う。
    """

    if today is None:
        today = local_today(tz)
    if season.start_date is None or season.end_date is None:
        return "unknown"
    if today < season.start_date:
        return "upcoming"
    if today > season.end_date:
        return "completed"
    return "live"


def season_views(
    seasons: list[Season], today: date | None = None, tz: tzinfo | None = None
) -> list[SeasonView]:
    if today is None:
        today = local_today(tz)
    return [
        SeasonView(
            id=s.id,
            name=s.name,
            start_date=s.start_date,
            end_date=s.end_date,
            status=season_status(s, today),
        )
        for s in seasons
    ]
