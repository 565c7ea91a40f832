import pytest

from core.errors import NetworkFailure, QueryRejected
from core.schema_cache import SchemaCache


def test_list_tables_uses_first_value_of_each_row(erp_gateway):
    cache = SchemaCache(erp_gateway)
    assert cache.list_tables() == ["llx_user", "llx_usergroup", "llx_societe"]


def test_list_tables_is_fetched_once(erp_gateway):
    cache = SchemaCache(erp_gateway)
    cache.list_tables()
    cache.list_tables()
    assert erp_gateway.calls == ["SHOW TABLES;"]


def test_columns_of_same_table_makes_one_gateway_call(erp_gateway):
    cache = SchemaCache(erp_gateway)
    first = cache.columns_of("llx_user")
    second = cache.columns_of("llx_user")

    assert first is second
    assert erp_gateway.calls == ["SHOW COLUMNS FROM `llx_user`;"]
    assert [c.field for c in first] == ["rowid", "login", "email"]
    assert first[0].is_primary_key
    assert first[2].nullable


def test_failed_fetch_is_not_memoised(fake_gateway):
    sql = "SHOW COLUMNS FROM `llx_user`;"
    gateway = fake_gateway({sql: NetworkFailure("timeout")})
    cache = SchemaCache(gateway)

    with pytest.raises(NetworkFailure):
        cache.columns_of("llx_user")
    assert cache.cached_columns("llx_user") is None

    gateway.responses[sql] = [{"Field": "rowid", "Type": "int(11)", "Key": "PRI"}]
    assert [c.field for c in cache.columns_of("llx_user")] == ["rowid"]
    assert gateway.calls == [sql, sql]


def test_preload_columns_reports_failures(fake_gateway):
    gateway = fake_gateway(
        {
            "SHOW COLUMNS FROM `a`;": [{"Field": "id", "Type": "int"}],
            "SHOW COLUMNS FROM `b`;": QueryRejected("denied"),
        },
    )
    cache = SchemaCache(gateway)
    errors = cache.preload_columns(["a", "b"], max_workers=2)

    assert list(errors) == ["b"]
    assert [c.field for c in cache.cached_columns("a")] == ["id"]
    assert cache.cached_columns("b") is None


def test_preload_skips_cached_tables(erp_gateway):
    cache = SchemaCache(erp_gateway)
    cache.columns_of("llx_user")
    assert cache.preload_columns(["llx_user"]) == {}
    assert erp_gateway.calls.count("SHOW COLUMNS FROM `llx_user`;") == 1


def test_search_is_case_insensitive_substring(erp_gateway):
    cache = SchemaCache(erp_gateway)
    assert cache.search("USER") == []
    cache.list_tables()
    assert cache.search("USER") == ["llx_user", "llx_usergroup"]
    assert cache.search("") == ["llx_user", "llx_usergroup", "llx_societe"]


def test_reset_forces_refetch(erp_gateway):
    cache = SchemaCache(erp_gateway)
    cache.list_tables()
    cache.reset()
    assert cache.cached_tables() == []
    cache.list_tables()
    assert erp_gateway.calls == ["SHOW TABLES;", "SHOW TABLES;"]


def test_select_statement():
    assert SchemaCache.select_statement("llx_user") == "SELECT * FROM `llx_user` LIMIT 100;"


def test_describe_for_prompt_skips_failing_tables(erp_gateway):
    erp_gateway.responses["SHOW COLUMNS FROM `llx_societe`;"] = QueryRejected("denied")
    cache = SchemaCache(erp_gateway)

    text = cache.describe_for_prompt(["llx_user", "llx_societe"])

    assert text == (
        "Table llx_user structure:\n"
        "- rowid (int(11)) PRIMARY KEY\n"
        "- login (varchar(50))\n"
        "- email (varchar(255)) nullable"
    )
