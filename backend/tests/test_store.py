from __future__ import annotations

from decimal import Decimal

from climbrank.domain import Event, Task
from climbrank.store import DynamoDBStore, InMemoryStore, table_schema
from climbrank.timestamps import Millis


def test_fetches_are_scoped_to_season_and_category(store: InMemoryStore):
    """取得は (イベント, シーズン, カテゴリ) の範囲に限られる。"""

    assert {t.id for t in store.fetch_season_tasks("ev1", "s2")} == {"s2-t1", "s2-t2", "s2-t3"}
    assert len(store.fetch_category_assignments("ev1", "s1", "adv")) == 3
    assert [r.participant_id for r in store.fetch_score_records("ev1", "s1", "adv")] == ["p3"]
    assert store.fetch_score_records("ev1", "s2", "adv") == []
    assert store.list_seasons("other") == []


def test_put_scores_overwrites_record_with_fresh_timestamp(store: InMemoryStore):
    record = store.put_scores("ev1", "s2", "adv", "p3", {"s2-t1": True}, "Sora")

    assert record.updated_at.kind == "millis"
    assert record.participant_name == "Sora"
    assert store.fetch_score_records("ev1", "s2", "adv") == [record]

    store.put_scores("ev1", "s2", "adv", "p3", {"s2-t1": False})
    assert store.fetch_score_records("ev1", "s2", "adv")[0].scores == {"s2-t1": False}


class FakeTable:
    """pk 一致 + sk 前方一致の query だけを持つ DynamoDB Table の代用。"""

    def __init__(self, items: list[dict] | None = None, page_size: int = 2):
        self.items: dict[tuple[str, str], dict] = {}
        self.page_size = page_size
        self.queries = 0
        for item in items or []:
            self.put_item(Item=item)

    def put_item(self, Item: dict) -> dict:
        self.items[(Item["pk"], Item["sk"])] = dict(Item)
        return {}

    def get_item(self, Key: dict) -> dict:
        item = self.items.get((Key["pk"], Key["sk"]))
        return {"Item": dict(item)} if item else {}

    def query(self, KeyConditionExpression, ExclusiveStartKey=None) -> dict:
        self.queries += 1
        pk_cond, sk_cond = KeyConditionExpression.get_expression()["values"]
        pk = pk_cond.get_expression()["values"][1]
        prefix = sk_cond.get_expression()["values"][1]
        matched = sorted(
            (it for (ipk, isk), it in self.items.items() if ipk == pk and isk.startswith(prefix)),
            key=lambda it: it["sk"],
        )
        if ExclusiveStartKey is not None:
            matched = [it for it in matched if it["sk"] > ExclusiveStartKey["sk"]]
        page = matched[: self.page_size]
        resp: dict = {"Items": [dict(it) for it in page]}
        if len(matched) > self.page_size:
            resp["LastEvaluatedKey"] = {"pk": pk, "sk": page[-1]["sk"]}
        return resp


def _ddb_store(items: list[dict], page_size: int = 2) -> tuple[DynamoDBStore, FakeTable]:
    table = FakeTable(items, page_size=page_size)
    return DynamoDBStore(table_name="climbrank-test", table=table), table


def test_dynamodb_list_follows_last_evaluated_key():
    """LastEvaluatedKey が返る間は続きを取得し、全ページを連結する。"""

    items = [{"pk": "EVENT#ev1", "sk": "META", "name": "Cup"}]
    items += [
        {"pk": "EVENT#ev1", "sk": f"PARTICIPANT#p{i}", "name": f"P{i}", "member_no": f"M-{i}"}
        for i in range(5)
    ]
    items.append({"pk": "EVENT#ev2", "sk": "PARTICIPANT#x", "name": "Other"})
    ddb, table = _ddb_store(items, page_size=2)

    participants = ddb.list_participants("ev1")

    assert [p.id for p in participants] == ["p0", "p1", "p2", "p3", "p4"]
    assert participants[3].member_no == "M-3"
    assert table.queries == 3
    assert ddb.get_event("ev1") == Event(id="ev1", name="Cup")
    assert ddb.get_event("missing") is None


def test_dynamodb_reads_assignments_and_scores_from_sort_key():
    """ASSIGN#{c}#{t} / SCORE#{c}#{p} の末尾から課題IDと参加者IDを取り出す。"""

    pk = "EVENT#ev1#SEASON#s1"
    ddb, _ = _ddb_store(
        [
            {"pk": pk, "sk": "TASK#t1", "name": "No.01", "points": Decimal("100")},
            {"pk": pk, "sk": "ASSIGN#beg#t1", "enabled": True, "task_no": Decimal("3")},
            {"pk": pk, "sk": "ASSIGN#beg#t#2", "enabled": False},
            {"pk": pk, "sk": "ASSIGN#adv#t1", "enabled": True},
            {
                "pk": pk,
                "sk": "SCORE#beg#p1",
                "scores": {"t1": True},
                "updated_at": Decimal("1700000000000"),
            },
        ]
    )

    assert ddb.fetch_season_tasks("ev1", "s1") == [Task(id="t1", name="No.01", points=100)]
    assignments = ddb.fetch_category_assignments("ev1", "s1", "beg")
    assert {(a.task_id, a.enabled, a.task_no) for a in assignments} == {
        ("t1", True, 3),
        ("t#2", False, None),
    }
    [record] = ddb.fetch_score_records("ev1", "s1", "beg")
    assert record.participant_id == "p1"
    assert record.scores == {"t1": True}
    assert record.updated_at == Millis(value=1_700_000_000_000)
    assert ddb.fetch_score_records("ev1", "s1", "adv") == []


def test_dynamodb_put_scores_round_trips_decimal_timestamp():
    """保存した updated_at は Decimal で書かれ、読み戻すと Millis になる。"""

    ddb, table = _ddb_store([])

    saved = ddb.put_scores("ev1", "s1", "beg", "p1", {"t1": True, "t2": False}, "Aoi")

    item = table.items[("EVENT#ev1#SEASON#s1", "SCORE#beg#p1")]
    assert isinstance(item["updated_at"], Decimal)
    assert item["participant_name"] == "Aoi"
    assert ddb.fetch_score_records("ev1", "s1", "beg") == [saved]
    assert saved.updated_at.kind == "millis"


def test_table_schema_matches_store_keys():
    """テーブル定義は pk(HASH) + sk(RANGE) の文字列キー。"""

    schema = table_schema("climbrank-dev")

    assert schema["TableName"] == "climbrank-dev"
    assert {(k["AttributeName"], k["KeyType"]) for k in schema["KeySchema"]} == {
        ("pk", "HASH"),
        ("sk", "RANGE"),
    }
    assert all(a["AttributeType"] == "S" for a in schema["AttributeDefinitions"])
