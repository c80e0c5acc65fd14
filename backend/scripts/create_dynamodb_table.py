"""ClimbRank 用の単一テーブル(pk/sk)を作成する。

既にある場合は何もしない。キー構成:

    pk=EVENT#{event}                sk=META | SEASON#{s} | CATEGORY#{c} | PARTICIPANT#{p}
    pk=EVENT#{event}#SEASON#{s}     sk=TASK#{t} | ASSIGN#{c}#{t} | SCORE#{c}#{p}

使い方:

    python backend/scripts/create_dynamodb_table.py --table climbrank-dev \\
        --endpoint-url http://localhost:8000
"""

from __future__ import annotations

import argparse
import logging

import boto3

from climbrank.config import Settings, setup_logging
from climbrank.store import table_schema

logger = logging.getLogger("climbrank.scripts.create_table")


def parse_args(settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the ClimbRank DynamoDB table")
    parser.add_argument(
        "--table",
        default=settings.ddb_table_name,
        help="table name (default: DDB_TABLE_NAME)",
    )
    parser.add_argument("--endpoint-url", default=None, help="e.g. DynamoDB Local")
    parser.add_argument("--region", default=None)
    return parser.parse_args()


def main() -> None:
    settings = Settings.load()
    setup_logging(settings.log_level)
    args = parse_args(settings)
    table_name = (args.table or "").strip()
    if not table_name:
        raise SystemExit("--table or DDB_TABLE_NAME is required")

    ddb = boto3.client("dynamodb", endpoint_url=args.endpoint_url, region_name=args.region)
    existing = ddb.list_tables().get("TableNames", [])
    if table_name in existing:
        logger.info("table already exists: %s", table_name)
        return

    ddb.create_table(**table_schema(table_name))
    ddb.get_waiter("table_exists").wait(TableName=table_name)
    logger.info("created table: %s", table_name)


if __name__ == "__main__":
    main()
