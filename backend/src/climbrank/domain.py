from __future__ import annotations

import math
from datetime import date, datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .timestamps import UNKNOWN, Timestamp, to_datetime, to_timestamp

SeasonStatus = Literal["upcoming", "live", "completed", "unknown"]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _Frozen(_Model):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _to_finite_number(v: object) -> int | float | None:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return None
    try:
        num = float(v)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    # 1.5 のような小数の課題番号は 1 と 2 の間に並ぶよう小数のまま保持する
    return int(num) if num.is_integer() else num


def _to_finite_int(v: object) -> int | None:
    num = _to_finite_number(v)
    return None if num is None else int(num)


def _to_text(v: object) -> str:
    if v is None:
        return ""
    return str(v).strip()


def _to_date(v: object) -> date | None:
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    dt = to_datetime(to_timestamp(v))
    return dt.date() if dt else None


class Event(_Frozen):
    id: str
    name: str = ""


class Season(_Frozen):
    id: str
    name: str = ""
    start_date: date | None = None
    end_date: date | None = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _coerce_date(cls, v: object) -> date | None:
        return _to_date(v)


class Category(_Frozen):
    id: str
    name: str = ""


class Participant(_Frozen):
    id: str
    name: str = ""
    member_no: str = ""
    category_id: str | None = None

    @field_validator("name", "member_no", mode="before")
    @classmethod
    def _coerce_text(cls, v: object) -> str:
        return _to_text(v)


class Task(_Frozen):
    id: str
    name: str = ""
    task_no: int | float | None = None
    points: int = Field(default=1, ge=1)
    is_bonus: bool = False
    grade: str = ""

    @field_validator("name", "grade", mode="before")
    @classmethod
    def _coerce_text(cls, v: object) -> str:
        return _to_text(v)

    @field_validator("task_no", mode="before")
    @classmethod
    def _coerce_task_no(cls, v: object) -> int | float | None:
        return _to_finite_number(v)

    @field_validator("points", mode="before")
    @classmethod
    def _coerce_points(cls, v: object) -> int:
        # 点数が欠損・不正な古いデータは1点扱い
        points = _to_finite_int(v)
        return points if points is not None and points >= 1 else 1


class AssignedTask(Task):
    """カテゴリで有効な課題。task_no は解決済み(None は番号なし=末尾)。"""


class Assignment(_Frozen):
    task_id: str = Field(validation_alias=AliasChoices("id", "taskId", "task_id"))
    enabled: bool = True
    task_no: int | float | None = None

    @field_validator("task_no", mode="before")
    @classmethod
    def _coerce_task_no(cls, v: object) -> int | float | None:
        return _to_finite_number(v)


class ScoreRecord(_Frozen):
    participant_id: str
    scores: dict[str, bool] = Field(default_factory=dict)
    updated_at: Timestamp = UNKNOWN
    participant_name: str | None = None

    @field_validator("scores", mode="before")
    @classmethod
    def _coerce_scores(cls, v: object) -> dict[str, bool]:
        if not v:
            return {}
        if not isinstance(v, dict):
            raise ValueError("scores must be a mapping")
        return {str(k): bool(flag) for k, flag in v.items()}

    @field_validator("updated_at", mode="before")
    @classmethod
    def _coerce_updated_at(cls, v: object):
        return to_timestamp(v)


class SeasonCategoryInput(_Frozen):
    """1つの (シーズン, カテゴリ) について取得済みのデータ。"""

    season_id: str
    category_id: str
    season_tasks: list[Task] = Field(default_factory=list)
    assignments: list[Assignment] = Field(default_factory=list)
    records: list[ScoreRecord] = Field(default_factory=list)


class ClearedTask(_Frozen):
    task_id: str
    name: str
    points: int
    grade: str = ""


class AggregateRow(_Frozen):
    participant_id: str
    name: str
    member_no: str
    total_points: int
    clear_count: int
    latest_updated_at: int
    rank: int


class RankingGroup(_Frozen):
    category_id: str
    category_name: str
    rows: list[AggregateRow]


class RankingCsvRow(_Frozen):
    season_scope: str
    category_id: str
    category_name: str
    rank: int
    participant_id: str
    participant_name: str
    member_no: str
    total_points: int
    clear_count: int


class CategoryClearSummary(_Frozen):
    category_id: str
    category_name: str
    total_points: int
    clear_count: int
    updated_at: datetime | None
    cleared_tasks: list[ClearedTask]


class SeasonClearSummary(_Frozen):
    season_id: str
    season_name: str
    categories: list[CategoryClearSummary]
    total_points: int
    total_clears: int


class ParticipantDetail(_Frozen):
    participant_id: str
    name: str
    member_no: str
    category_id: str | None
    season_scope: str
    seasons: list[SeasonClearSummary]
    total_points: int
    total_clears: int


class ScoreSheetTask(_Frozen):
    task_id: str
    name: str
    task_no: int | float | None
    points: int
    grade: str = ""
    is_bonus: bool = False
    cleared: bool


class ScoreSheet(_Frozen):
    """採点入力画面用。カテゴリの課題を番号順に並べ、現在の完登状態を付ける。"""

    season_id: str
    category_id: str
    participant_id: str
    participant_name: str
    updated_at: datetime | None
    tasks: list[ScoreSheetTask]
    total_points: int
    clear_count: int


class SeasonView(_Frozen):
    id: str
    name: str
    start_date: date | None
    end_date: date | None
    status: SeasonStatus


class PutScoresRequest(_Model):
    scores: dict[str, bool]
    participant_name: str | None = Field(default=None, max_length=100)

    @field_validator("scores", mode="before")
    @classmethod
    def _normalize_scores(cls, v: object) -> dict[str, bool]:
        if not isinstance(v, dict):
            raise ValueError("scores must be an object")
        normalized: dict[str, bool] = {}
        for key, flag in v.items():
            if not isinstance(key, str) or not key.strip():
                raise ValueError("score keys must be non-blank strings")
            if not isinstance(flag, bool):
                raise ValueError("score values must be booleans")
            normalized[key.strip()] = flag
        return normalized

    @field_validator("participant_name", mode="before")
    @classmethod
    def _strip_name(cls, v: object) -> str | None:
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("participantName must be a string")
        return v.strip() or None
