from __future__ import annotations

import pytest
from sqlalchemy import text

from graphite_index_cleanup.common.errors import QueryError
from graphite_index_cleanup.storage.db import db_connection


def test_db_connection_yields_single_connection(tmp_path) -> None:
    with db_connection(f"sqlite:///{tmp_path / 'index.db'}") as conn:
        assert conn.execute(text("select 1")).scalar() == 1


def test_db_connection_failure_is_query_error(tmp_path) -> None:
    with pytest.raises(QueryError):
        with db_connection(f"sqlite:///{tmp_path / 'missing' / 'index.db'}"):
            pass
