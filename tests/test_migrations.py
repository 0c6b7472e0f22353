"""
The alembic migration must build the same schema as Base.metadata.
"""

from argparse import Namespace
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import CheckConstraint, inspect

from bank_ledger.models import Base
from bank_ledger.models.base import create_store_engine

ROOT = Path(__file__).resolve().parents[1]


def test_upgrade_matches_model_schema(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    config = Config(cmd_opts=Namespace(x=[f"url={url}"]))
    config.set_main_option("script_location", str(ROOT / "migrations"))

    command.upgrade(config, "head")

    engine = create_store_engine(url=url)
    try:
        inspector = inspect(engine)
        with engine.connect() as conn:
            table_sql = dict(conn.exec_driver_sql(
                "SELECT name, sql FROM sqlite_master WHERE type = 'table'"
            ).all())

        for table in Base.metadata.sorted_tables:
            columns = {c["name"] for c in inspector.get_columns(table.name)}
            assert columns == set(table.columns.keys())

            for constraint in table.constraints:
                if isinstance(constraint, CheckConstraint):
                    expected = (
                        f"CONSTRAINT {constraint.name} "
                        f"CHECK ({constraint.sqltext})"
                    )
                    assert expected in table_sql[table.name]
    finally:
        engine.dispose()
