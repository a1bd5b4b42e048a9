"""
Tests for the SQL statement splitter.
"""
import types

from dbtools.core.sql_splitter import split_sql_statements


def split(sql):
    return list(split_sql_statements(sql))


def test_splits_on_semicolons():
    assert split("CREATE TABLE a (id INT); CREATE TABLE b (id INT);") == [
        "CREATE TABLE a (id INT);",
        "CREATE TABLE b (id INT);",
    ]


def test_returns_lazy_generator():
    assert isinstance(split_sql_statements("SELECT 1;"), types.GeneratorType)


def test_semicolon_in_string_and_dollar_block():
    sql = (
        "SELECT ';'; "
        "CREATE FUNCTION f() RETURNS trigger AS $$ BEGIN NEW.x = 1; RETURN NEW; END; $$ LANGUAGE plpgsql;"
    )
    statements = split(sql)
    assert len(statements) == 2
    assert statements[0] == "SELECT ';';"
    assert statements[1].startswith("CREATE FUNCTION f()")
    assert statements[1].endswith("$$ LANGUAGE plpgsql;")


def test_tagged_dollar_quote_only_closed_by_same_tag():
    sql = "DO $body$ BEGIN PERFORM $$x;$$; RAISE NOTICE 'a;b'; END $body$; SELECT 2;"
    statements = split(sql)
    assert statements == [
        "DO $body$ BEGIN PERFORM $$x;$$; RAISE NOTICE 'a;b'; END $body$;",
        "SELECT 2;",
    ]


def test_escaped_quotes_stay_inside_string():
    statements = split("INSERT INTO t VALUES ('it''s; fine'); SELECT 1;")
    assert statements == ["INSERT INTO t VALUES ('it''s; fine');", "SELECT 1;"]


def test_double_quoted_identifier_with_semicolon():
    statements = split('CREATE TABLE "odd;name" (id INT); SELECT 1;')
    assert statements[0] == 'CREATE TABLE "odd;name" (id INT);'
    assert len(statements) == 2


def test_line_comment_hides_semicolon():
    sql = "-- create; things\nCREATE TABLE a (id INT); -- trailing; note\nSELECT 1;"
    statements = split(sql)
    assert len(statements) == 2
    assert statements[0] == "-- create; things\nCREATE TABLE a (id INT);"
    assert statements[1] == "-- trailing; note\nSELECT 1;"


def test_quote_inside_comment_is_ignored():
    statements = split("-- don't stop\nSELECT 1; SELECT 2;")
    assert len(statements) == 2


def test_final_statement_without_terminator():
    assert split("SELECT 1; SELECT 2") == ["SELECT 1;", "SELECT 2"]


def test_blank_and_comment_only_fragments_are_dropped():
    assert split("  ;\n\n;  -- just a comment\n") == []
    assert split("") == []


def test_positional_parameters_are_not_dollar_quotes():
    statements = split("PREPARE q AS SELECT $1, $2; SELECT 3;")
    assert statements == ["PREPARE q AS SELECT $1, $2;", "SELECT 3;"]


def test_dollar_inside_identifier_is_not_a_tag():
    statements = split("SELECT price$usd$ FROM t; SELECT 2;")
    assert statements == ["SELECT price$usd$ FROM t;", "SELECT 2;"]


def test_dollar_quote_after_whitespace_still_opens():
    statements = split("CREATE FUNCTION f() RETURNS int AS $fn$ SELECT 1; $fn$ LANGUAGE sql; SELECT 2;")
    assert statements == ["CREATE FUNCTION f() RETURNS int AS $fn$ SELECT 1; $fn$ LANGUAGE sql;", "SELECT 2;"]
