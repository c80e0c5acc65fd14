from __future__ import annotations


class ClimbRankError(Exception):
    pass


class NotFoundError(ClimbRankError):
    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} not found: {key}")
        self.kind = kind
        self.key = key


class AggregationError(ClimbRankError):
    """集計に必要なデータ取得のいずれかが失敗した。部分的な結果は返さない。"""
