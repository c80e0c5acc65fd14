from __future__ import annotations

from climbrank.detail import build_participant_detail, build_score_sheet
from climbrank.domain import (
    Assignment,
    Category,
    Participant,
    ScoreRecord,
    Season,
    SeasonCategoryInput,
    Task,
)

SEASONS = [Season(id="s1", name="Spring"), Season(id="s2", name="Summer")]
CATEGORIES = [Category(id="beg", name="Beginner"), Category(id="adv", name="Advanced")]
TASKS = [
    Task(id="t1", name="No.01", points=100, grade="6級"),
    Task(id="t2", name="No.02", points=80, grade="5級"),
]


def _input(season_id: str, category_id: str, records: list[ScoreRecord]) -> SeasonCategoryInput:
    return SeasonCategoryInput(
        season_id=season_id,
        category_id=category_id,
        season_tasks=TASKS,
        assignments=[Assignment(task_id=t.id) for t in TASKS],
        records=records,
    )


def test_detail_lists_cleared_tasks_per_season_without_double_counting():
    """シーズンごとに完登課題を並べ、ID/名前の重複記録は1つにまとめる。"""

    participant = Participant(id="p1", name="Aoi", member_no="M-1001", category_id="beg")
    inputs = [
        _input("s1", "beg", [
            ScoreRecord(participant_id="p1", scores={"t2": True, "No.02": True, "t1": True},
                        updated_at=60_000),
            ScoreRecord(participant_id="p2", scores={"t1": True}),
        ]),
        _input("s2", "beg", [ScoreRecord(participant_id="p2", scores={"t1": True})]),
    ]

    detail = build_participant_detail(participant, SEASONS, CATEGORIES, inputs, ["s1", "s2"], "all")

    assert (detail.total_points, detail.total_clears) == (180, 2)
    spring, summer = detail.seasons
    assert spring.season_name == "Spring"
    assert [c.category_id for c in spring.categories] == ["beg"]
    beg = spring.categories[0]
    assert [(t.task_id, t.grade) for t in beg.cleared_tasks] == [("t1", "6級"), ("t2", "5級")]
    assert beg.updated_at is not None and beg.updated_at.minute == 1
    assert summer.categories == []
    assert summer.total_points == 0


def test_detail_without_category_checks_every_category():
    participant = Participant(id="p9", name="", category_id=None)
    inputs = [
        _input("s1", "beg", [ScoreRecord(participant_id="p9", scores={"t1": True})]),
        _input("s1", "adv", [ScoreRecord(participant_id="p9", scores={"legacy": True})]),
    ]

    detail = build_participant_detail(participant, SEASONS, CATEGORIES, inputs, ["s1"], "Spring")

    assert detail.name == "名無し"
    assert [s.season_id for s in detail.seasons] == ["s1"]
    assert [(c.category_name, c.total_points) for c in detail.seasons[0].categories] == [
        ("Beginner", 100),
        ("Advanced", 1),
    ]


def test_detail_with_out_of_range_timestamp_has_no_updated_at():
    """日時に変換できない更新時刻は None として扱い、詳細の組み立ては止めない。"""

    participant = Participant(id="p1", name="Aoi", category_id="beg")
    inputs = [
        _input("s1", "beg", [ScoreRecord(participant_id="p1", scores={"t1": True},
                                         updated_at=10**17)]),
    ]

    detail = build_participant_detail(participant, SEASONS, CATEGORIES, inputs, ["s1"], "Spring")

    beg = detail.seasons[0].categories[0]
    assert beg.updated_at is None
    assert beg.total_points == 100


def test_score_sheet_marks_cleared_tasks_in_task_no_order():
    """採点シートは課題番号順に全課題を並べ、ID・課題名どちらのキーでも完登を反映する。"""

    participant = Participant(id="p1", name="Aoi", category_id="beg")
    item = _input("s1", "beg", [
        ScoreRecord(participant_id="p1", scores={"No.02": True, "t1": False, "gone": True},
                    updated_at=60_000, participant_name="あおい"),
    ])

    sheet = build_score_sheet(participant, item)

    assert [(t.task_id, t.cleared) for t in sheet.tasks] == [("t1", False), ("t2", True)]
    assert sheet.tasks[1].grade == "5級"
    # 不明キーは順位表と同じく1点として数える
    assert (sheet.total_points, sheet.clear_count) == (81, 2)
    assert sheet.participant_name == "あおい"
    assert sheet.updated_at is not None


def test_score_sheet_without_record_is_blank():
    sheet = build_score_sheet(Participant(id="p9"), _input("s1", "beg", []))

    assert [t.cleared for t in sheet.tasks] == [False, False]
    assert (sheet.total_points, sheet.clear_count) == (0, 0)
    assert sheet.participant_name == "名無し"
    assert sheet.updated_at is None
