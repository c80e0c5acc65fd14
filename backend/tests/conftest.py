from __future__ import annotations

import pytest

from climbrank.domain import Assignment, Category, Event, Participant, ScoreRecord, Season, Task
from climbrank.store import InMemoryStore


@pytest.fixture
def store() -> InMemoryStore:
    """2シーズン・2カテゴリの小さなイベント。"""

    s = InMemoryStore.create()
    s.add_event(Event(id="ev1", name="FlashComp 2026"))
    s.add_season("ev1", Season(id="s1", name="Spring", start_date="2026-04-01", end_date="2026-04-30"))
    s.add_season("ev1", Season(id="s2", name="Summer", start_date="2026-07-01", end_date="2026-07-31"))
    s.add_category("ev1", Category(id="beg", name="Beginner"))
    s.add_category("ev1", Category(id="adv", name="Advanced"))

    s.add_participant("ev1", Participant(id="p1", name="Aoi", member_no="M-1001", category_id="beg"))
    s.add_participant("ev1", Participant(id="p2", name="Riku", member_no="M-1002", category_id="beg"))
    s.add_participant("ev1", Participant(id="p3", name="Sora", member_no="M-2001", category_id="adv"))

    for season_id in ("s1", "s2"):
        s.add_task("ev1", season_id, Task(id=f"{season_id}-t1", name="No.01", points=100))
        s.add_task("ev1", season_id, Task(id=f"{season_id}-t2", name="No.02", points=80))
        s.add_task("ev1", season_id, Task(id=f"{season_id}-t3", name="No.03", points=150))
        for category_id in ("beg", "adv"):
            for n in (1, 2, 3):
                s.add_assignment(
                    "ev1", season_id, category_id, Assignment(task_id=f"{season_id}-t{n}")
                )

    s.add_score_record(
        "ev1", "s1", "beg",
        ScoreRecord(participant_id="p1", scores={"s1-t1": True, "s1-t2": True}, updated_at=1_000),
    )
    s.add_score_record(
        "ev1", "s1", "beg",
        ScoreRecord(participant_id="p2", scores={"s1-t3": True, "s1-t1": False}, updated_at=2_000),
    )
    s.add_score_record(
        "ev1", "s2", "beg",
        ScoreRecord(participant_id="p2", scores={"No.01": True}, updated_at=3_000),
    )
    s.add_score_record(
        "ev1", "s1", "adv",
        ScoreRecord(participant_id="p3", scores={"s1-t3": True}, updated_at={"seconds": 5}),
    )
    return s
