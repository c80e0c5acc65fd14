from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class Millis(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["millis"] = "millis"
    value: int


class Unknown(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unknown"] = "unknown"


Timestamp = Annotated[Union[Millis, Unknown], Field(discriminator="kind")]

UNKNOWN = Unknown()

_TIMESTAMP_ADAPTER: TypeAdapter[Millis | Unknown] = TypeAdapter(Timestamp)


def to_timestamp(raw: object) -> Millis | Unknown:
    """保存層から来た時刻表現を Millis / Unknown に正規化する。

    datetime, to_millis()/toMillis() を持つオブジェクト, {"seconds": n} 形式,
    エポックミリ秒の数値, ISO-8601 文字列, 自身の dump 形式 {"kind": ...} を
    受け付ける。それ以外や範囲外の値は Unknown(例外は出さない)。
    """

    try:
        return _convert(raw)
    except (OverflowError, ValueError, InvalidOperation):
        return UNKNOWN


def _convert(raw: object) -> Millis | Unknown:
    if raw is None or isinstance(raw, bool):
        return UNKNOWN
    if isinstance(raw, (Millis, Unknown)):
        return raw
    if isinstance(raw, datetime):
        return Millis(value=_datetime_to_ms(raw))
    if isinstance(raw, (int, float, Decimal)):
        return _number_to_millis(raw)
    if isinstance(raw, str):
        return _parse_iso(raw)

    if isinstance(raw, Mapping) and "kind" in raw:
        try:
            return _TIMESTAMP_ADAPTER.validate_python(raw)
        except ValidationError:
            return UNKNOWN

    for attr in ("to_millis", "toMillis"):
        method = getattr(raw, attr, None)
        if callable(method):
            try:
                return _number_to_millis(method())
            except TypeError:
                return UNKNOWN

    seconds = raw.get("seconds") if isinstance(raw, Mapping) else getattr(raw, "seconds", None)
    if isinstance(seconds, (int, float, Decimal)) and not isinstance(seconds, bool):
        return _number_to_millis(seconds * 1000)

    return UNKNOWN


def to_epoch_ms(ts: Millis | Unknown) -> int:
    return ts.value if isinstance(ts, Millis) else 0


def to_datetime(ts: Millis | Unknown) -> datetime | None:
    if not isinstance(ts, Millis):
        return None
    try:
        return datetime.fromtimestamp(ts.value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def now_timestamp() -> Millis:
    return Millis(value=_datetime_to_ms(datetime.now(timezone.utc)))


def _datetime_to_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def _parse_iso(raw: str) -> Millis | Unknown:
    s = raw.strip()
    if not s:
        return UNKNOWN
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return Millis(value=_datetime_to_ms(datetime.fromisoformat(s)))
    except ValueError:
        return UNKNOWN


def _number_to_millis(value: object) -> Millis | Unknown:
    # inf / NaN は int() で OverflowError / ValueError / InvalidOperation になる
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return UNKNOWN
    return Millis(value=int(value))
