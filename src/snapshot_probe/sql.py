"""SQL text used by the probe."""

from __future__ import annotations

SEED_TABLE = "test"

CREATE_TABLE = """
  create table test (id integer primary key, name text);
  insert into test (name) values ('hello');
  insert into test (name) values ('world');
"""

SELECT_ALL = "select * from test"

TABLE_CATALOG = "select name from sqlite_master where type = 'table' order by name"

# The destination is bound as a parameter so paths never need quoting
VACUUM_INTO = "vacuum into ?"

PING = "select 1"
