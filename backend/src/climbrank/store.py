from __future__ import annotations

import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol

import boto3
from boto3.dynamodb.conditions import Key

from .config import Settings
from .domain import Assignment, Category, Event, Participant, ScoreRecord, Season, Task
from .timestamps import Millis, now_timestamp


class Store(Protocol):
    def get_event(self, event_id: str) -> Event | None: ...

    def list_seasons(self, event_id: str) -> list[Season]: ...

    def list_categories(self, event_id: str) -> list[Category]: ...

    def list_participants(self, event_id: str) -> list[Participant]: ...

    def fetch_season_tasks(self, event_id: str, season_id: str) -> list[Task]: ...

    def fetch_category_assignments(
        self, event_id: str, season_id: str, category_id: str
    ) -> list[Assignment]: ...

    def fetch_score_records(
        self, event_id: str, season_id: str, category_id: str
    ) -> list[ScoreRecord]: ...

    def put_scores(
        self,
        event_id: str,
        season_id: str,
        category_id: str,
        participant_id: str,
        scores: dict[str, bool],
        participant_name: str | None = None,
    ) -> ScoreRecord: ...


@dataclass
class InMemoryStore(Store):
    events: dict[str, Event] = field(default_factory=dict)
    seasons: dict[tuple[str, str], Season] = field(default_factory=dict)
    categories: dict[tuple[str, str], Category] = field(default_factory=dict)
    participants: dict[tuple[str, str], Participant] = field(default_factory=dict)
    tasks: dict[tuple[str, str, str], Task] = field(default_factory=dict)
    assignments: dict[tuple[str, str, str, str], Assignment] = field(default_factory=dict)
    scores: dict[tuple[str, str, str, str], ScoreRecord] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def create(cls) -> "InMemoryStore":
        return cls()

    def add_event(self, event: Event) -> Event:
        self.events[event.id] = event
        return event

    def add_season(self, event_id: str, season: Season) -> Season:
        self.seasons[(event_id, season.id)] = season
        return season

    def add_category(self, event_id: str, category: Category) -> Category:
        self.categories[(event_id, category.id)] = category
        return category

    def add_participant(self, event_id: str, participant: Participant) -> Participant:
        self.participants[(event_id, participant.id)] = participant
        return participant

    def add_task(self, event_id: str, season_id: str, task: Task) -> Task:
        self.tasks[(event_id, season_id, task.id)] = task
        return task

    def add_assignment(
        self, event_id: str, season_id: str, category_id: str, assignment: Assignment
    ) -> Assignment:
        self.assignments[(event_id, season_id, category_id, assignment.task_id)] = assignment
        return assignment

    def add_score_record(
        self, event_id: str, season_id: str, category_id: str, record: ScoreRecord
    ) -> ScoreRecord:
        self.scores[(event_id, season_id, category_id, record.participant_id)] = record
        return record

    def get_event(self, event_id: str) -> Event | None:
        return self.events.get(event_id)

    def list_seasons(self, event_id: str) -> list[Season]:
        return [s for (eid, _), s in self.seasons.items() if eid == event_id]

    def list_categories(self, event_id: str) -> list[Category]:
        return [c for (eid, _), c in self.categories.items() if eid == event_id]

    def list_participants(self, event_id: str) -> list[Participant]:
        return [p for (eid, _), p in self.participants.items() if eid == event_id]

    def fetch_season_tasks(self, event_id: str, season_id: str) -> list[Task]:
        return [
            t for (eid, sid, _), t in self.tasks.items() if (eid, sid) == (event_id, season_id)
        ]

    def fetch_category_assignments(
        self, event_id: str, season_id: str, category_id: str
    ) -> list[Assignment]:
        key = (event_id, season_id, category_id)
        return [a for (eid, sid, cid, _), a in self.assignments.items() if (eid, sid, cid) == key]

    def fetch_score_records(
        self, event_id: str, season_id: str, category_id: str
    ) -> list[ScoreRecord]:
        key = (event_id, season_id, category_id)
        with self._lock:
            items = list(self.scores.items())
        return [r for (eid, sid, cid, _), r in items if (eid, sid, cid) == key]

    def put_scores(
        self,
        event_id: str,
        season_id: str,
        category_id: str,
        participant_id: str,
        scores: dict[str, bool],
        participant_name: str | None = None,
    ) -> ScoreRecord:
        record = ScoreRecord(
            participant_id=participant_id,
            scores=dict(scores),
            updated_at=now_timestamp(),
            participant_name=participant_name,
        )
        with self._lock:
            self.scores[(event_id, season_id, category_id, participant_id)] = record
        return record


@dataclass
class DynamoDBStore(Store):
    """単一テーブル(pk/sk)構成。

    pk=EVENT#{event}                sk=META | SEASON#{s} | CATEGORY#{c} | PARTICIPANT#{p}
    pk=EVENT#{event}#SEASON#{s}     sk=TASK#{t} | ASSIGN#{c}#{t} | SCORE#{c}#{p}
    """

    table_name: str
    # 指定時は boto3 の Table の代わりに使う(ローカル検証・テスト用)
    table: Any = field(default=None, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "DynamoDBStore":
        if not settings.ddb_table_name:
            raise RuntimeError("DDB_TABLE_NAME is required for dynamodb store")
        return cls(table_name=settings.ddb_table_name)

    @property
    def _table(self):
        if self.table is not None:
            return self.table
        # to_thread から並行に呼ばれるため、呼び出しごとにセッションを作る
        ddb = boto3.session.Session().resource("dynamodb")
        return ddb.Table(self.table_name)

    def _query_prefix(self, pk: str, sk_prefix: str) -> list[dict[str, Any]]:
        table = self._table
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("pk").eq(pk) & Key("sk").begins_with(sk_prefix)
        }
        items: list[dict[str, Any]] = []
        while True:
            resp = table.query(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def get_event(self, event_id: str) -> Event | None:
        resp = self._table.get_item(Key={"pk": _event_pk(event_id), "sk": "META"})
        item = resp.get("Item")
        if not item:
            return None
        return Event(id=event_id, name=item.get("name", ""))

    def list_seasons(self, event_id: str) -> list[Season]:
        items = self._query_prefix(_event_pk(event_id), "SEASON#")
        return [Season.model_validate({**_strip_keys(it), "id": _sk_tail(it)}) for it in items]

    def list_categories(self, event_id: str) -> list[Category]:
        items = self._query_prefix(_event_pk(event_id), "CATEGORY#")
        return [Category.model_validate({**_strip_keys(it), "id": _sk_tail(it)}) for it in items]

    def list_participants(self, event_id: str) -> list[Participant]:
        items = self._query_prefix(_event_pk(event_id), "PARTICIPANT#")
        return [
            Participant.model_validate({**_strip_keys(it), "id": _sk_tail(it)}) for it in items
        ]

    def fetch_season_tasks(self, event_id: str, season_id: str) -> list[Task]:
        items = self._query_prefix(_season_pk(event_id, season_id), "TASK#")
        return [Task.model_validate({**_strip_keys(it), "id": _sk_tail(it)}) for it in items]

    def fetch_category_assignments(
        self, event_id: str, season_id: str, category_id: str
    ) -> list[Assignment]:
        items = self._query_prefix(_season_pk(event_id, season_id), f"ASSIGN#{category_id}#")
        return [
            Assignment.model_validate({**_strip_keys(it), "id": it["sk"].split("#", 2)[2]})
            for it in items
        ]

    def fetch_score_records(
        self, event_id: str, season_id: str, category_id: str
    ) -> list[ScoreRecord]:
        items = self._query_prefix(_season_pk(event_id, season_id), f"SCORE#{category_id}#")
        records: list[ScoreRecord] = []
        for it in items:
            # sk: SCORE#{category_id}#{participant_id}
            participant_id = it["sk"].split("#", 2)[2]
            records.append(
                ScoreRecord.model_validate(
                    {**_strip_keys(it), "participant_id": participant_id}
                )
            )
        return records

    def put_scores(
        self,
        event_id: str,
        season_id: str,
        category_id: str,
        participant_id: str,
        scores: dict[str, bool],
        participant_name: str | None = None,
    ) -> ScoreRecord:
        updated_at: Millis = now_timestamp()
        item: dict[str, Any] = {
            "pk": _season_pk(event_id, season_id),
            "sk": f"SCORE#{category_id}#{participant_id}",
            "scores": {k: bool(v) for k, v in scores.items()},
            "updated_at": Decimal(updated_at.value),
        }
        if participant_name:
            item["participant_name"] = participant_name
        self._table.put_item(Item=item)
        return ScoreRecord(
            participant_id=participant_id,
            scores=dict(scores),
            updated_at=updated_at,
            participant_name=participant_name,
        )


def table_schema(table_name: str) -> dict[str, Any]:
    """DynamoDBStore が前提とするテーブル定義(create_table の引数)。"""

    return {
        "TableName": table_name,
        "AttributeDefinitions": [
            {"AttributeName": "pk", "AttributeType": "S"},
            {"AttributeName": "sk", "AttributeType": "S"},
        ],
        "KeySchema": [
            {"AttributeName": "pk", "KeyType": "HASH"},
            {"AttributeName": "sk", "KeyType": "RANGE"},
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }


def build_store(settings: Settings) -> Store:
    if settings.store_backend == "dynamodb":
        return DynamoDBStore.from_settings(settings)
    return InMemoryStore.create()


def _event_pk(event_id: str) -> str:
    return f"EVENT#{event_id}"


def _season_pk(event_id: str, season_id: str) -> str:
    return f"EVENT#{event_id}#SEASON#{season_id}"


def _sk_tail(item: dict[str, Any]) -> str:
    return item["sk"].split("#", 1)[1]


def _strip_keys(item: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in item.items() if k not in ("pk", "sk")}
