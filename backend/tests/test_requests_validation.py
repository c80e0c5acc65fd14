from __future__ import annotations

import pytest
from pydantic import ValidationError

from climbrank.domain import PutScoresRequest, ScoreRecord
from climbrank.timestamps import UNKNOWN, Millis


def test_put_scores_request_rejects_blank_keys():
    """課題キーが空白のみの場合は弾く。"""

    with pytest.raises(ValidationError):
        PutScoresRequest(scores={"  ": True})


def test_put_scores_request_rejects_non_boolean_values():
    """完登フラグは真偽値のみ。"""

    with pytest.raises(ValidationError):
        PutScoresRequest.model_validate({"scores": {"t1": "yes"}})


def test_put_scores_request_strips_keys_and_name():
    req = PutScoresRequest.model_validate({"scores": {" t1 ": True}, "participantName": "  "})
    assert req.scores == {"t1": True}
    assert req.participant_name is None


def test_score_record_accepts_raw_document():
    """保存データ(camelCase)の採点記録をそのまま読み込める。"""

    record = ScoreRecord.model_validate(
        {"participantId": "p1", "scores": {"t1": 1, "t2": 0}, "updatedAt": {"seconds": 2}}
    )
    assert record.scores == {"t1": True, "t2": False}
    assert record.updated_at.value == 2_000


def test_score_record_dump_round_trips_timestamp():
    """dump した採点記録を読み直しても更新時刻が失われない。"""

    record = ScoreRecord(participant_id="p", updated_at=5)

    assert ScoreRecord.model_validate(record.model_dump()).updated_at == Millis(value=5)
    assert ScoreRecord.model_validate(record.model_dump(by_alias=True)) == record
    assert ScoreRecord.model_validate_json(record.model_dump_json()) == record

    unknown = ScoreRecord(participant_id="p")
    assert ScoreRecord.model_validate(unknown.model_dump()).updated_at == UNKNOWN
