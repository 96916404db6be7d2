"""
Tests for the pure pipeline components: prompts, SQL extraction, validation,
fallback query, result parsing and retry classification.
These tests don't require external services or network access.
"""

from decimal import Decimal

import pytest

from reco_agent.core.errors import (
    EllipsisRejectedError,
    EmptyResultError,
    NoSQLFoundError,
    ServiceError,
    ServiceTimeoutError,
)
from reco_agent.core.models import RecommendationRequest
from reco_agent.core.retry_policy import RetryPolicy
from reco_agent.data.models import ExecuteQueryResponse
from reco_agent.intelligence.fallback_query import CatalogSchema, FallbackQueryBuilder
from reco_agent.intelligence.prompts import build_guided_prompt, build_retry_prompt, build_simple_prompt
from reco_agent.intelligence.result_parser import parse_first_column_ids, stringify_results
from reco_agent.intelligence.sql_extractor import extract_candidate_sql, extract_sql, fallback_extract_sql
from reco_agent.security.sql_validator import SQLValidator, ValidatorConfig


def test_simple_prompt_states_count_and_user():
    """The simple prompt names the count and scopes to one user's data."""
    prompt = build_simple_prompt(42, 7)

    assert "7 formation recommendations" in prompt
    assert "id=42" in prompt
    for attribute in ["specialties", "budget", "establishment", "grades", "training_types"]:
        assert attribute in prompt, f"Missing {attribute}"
    assert build_simple_prompt(42, 7) == prompt


def test_guided_and_retry_prompts():
    guided = build_guided_prompt(3, 5)
    assert "LIMIT 5" in guided
    assert "```sql" in guided
    assert "user id = 3" in guided

    retry = build_retry_prompt(3, 5, "  function jsonb_array_elements_text(json) does not exist \n")
    assert retry.startswith("The previous query failed:")
    assert "function jsonb_array_elements_text(json) does not exist" in retry
    assert "LIMIT 5" in retry


def test_extract_labeled_sql_fence():
    """Fenced SQL wins and prose outside the fence is ignored."""
    text = (
        "Here is a SELECT you could run:\n"
        "```sql\n"
        "  SELECT f.id FROM formations f LIMIT 3;  \n"
        "```\n"
        "Hope this helps; SELECT wisely."
    )
    assert extract_sql(text) == "SELECT f.id FROM formations f LIMIT 3;"


def test_extract_labeled_fence_case_insensitive():
    text = "```SQL\nselect 1;\n```"
    assert extract_sql(text) == "select 1;"


def test_extract_generic_code_fence():
    text = "Answer:\n```\nSELECT id FROM formations\n```"
    assert extract_sql(text) == "SELECT id FROM formations"


def test_extract_bare_statement():
    """Without a fence, the first statement up to the semicolon is returned."""
    text = "I suggest: select f.id, f.titre from formations f order by f.id limit 5; then display them."
    assert extract_sql(text) == "select f.id, f.titre from formations f order by f.id limit 5;"


def test_extract_bare_statement_other_keywords():
    assert extract_sql("Run DELETE FROM x WHERE id = 1; now") == "DELETE FROM x WHERE id = 1;"


def test_loose_extraction_without_terminator():
    text = "The query is SELECT f.id FROM formations f ORDER BY f.id"

    assert extract_sql(text) is None
    assert fallback_extract_sql(text) == "SELECT f.id FROM formations f ORDER BY f.id"
    assert extract_candidate_sql(text) == "SELECT f.id FROM formations f ORDER BY f.id"


def test_no_sql_found():
    text = "Sorry, I could not find enough information about this user."

    assert extract_sql(text) is None
    assert fallback_extract_sql(text) is None
    assert extract_candidate_sql(text) is None
    assert extract_candidate_sql("") is None


def test_empty_fence_falls_through():
    text = "```\n```\nSELECT 1;"
    assert extract_sql(text) == "SELECT 1;"


def test_validator_rejects_ellipsis():
    validator = SQLValidator()

    for sql in [
        "SELECT f.id FROM formations f WHERE f.titre IN (..) LIMIT 5;",
        "SELECT f.id, … FROM formations f LIMIT 5;",
        "WITH u AS (SELECT 1) SELECT f.id FROM formations f JOIN … ;",
    ]:
        is_valid, reason = validator.validate(sql)
        assert not is_valid, f"Ellipsis not rejected: {sql}"
        assert "ellipses" in reason


def test_validator_accepts_complete_sql():
    is_valid, reason = SQLValidator().validate("SELECT f.id FROM formations f WHERE f.prix::int > 3 LIMIT 5;")
    assert is_valid
    assert reason is None


def test_validator_single_statement_gate():
    sql = "SELECT 1; SELECT 2;"

    assert SQLValidator().validate(sql)[0], "Multiple statements are allowed by default"

    strict = SQLValidator(ValidatorConfig(single_statement=True))
    is_valid, reason = strict.validate(sql)
    assert not is_valid
    assert "found 2" in reason
    assert strict.validate("SELECT 1;")[0]


@pytest.mark.parametrize("user_id,top_k", [(1, 1), (42, 5), (0, 100), (-3, 2), (987654321, 20)])
def test_fallback_query_shape(user_id, top_k):
    """The fallback query is complete, ellipsis-free and ends with LIMIT top_k;"""
    sql = FallbackQueryBuilder().build(user_id, top_k)

    assert sql.startswith("WITH u AS (")
    assert sql.endswith(f"LIMIT {top_k};")
    assert sql.count(";") == 1
    assert ".." not in sql and "…" not in sql
    assert f"WHERE id = {user_id}" in sql
    assert SQLValidator(ValidatorConfig(single_statement=True)).validate(sql) == (True, None)


def test_fallback_query_scoring_and_filters():
    sql = FallbackQueryBuilder().build(7, 10)

    for token_set in ["training_types", "formation_domains", "job_sectors"]:
        assert f"->'{token_set}'" in sql
    assert "json_array_elements_text(u.specialites)" in sql
    for relation in ['"matieres_enseignees"', '"debouches_secteurs"', '"specialites_favorisees"', '"formations"']:
        assert relation in sql
    assert sql.count("COALESCE((") == 4
    assert "f.titre IS NOT NULL AND f.titre <> '' AND f.titre <> 'N/A'" in sql
    assert "f.etablissement IS NOT NULL" in sql
    assert "f.prix_annuel <=" in sql
    assert "ORDER BY score DESC NULLS LAST, f.id" in sql


def test_fallback_query_custom_schema():
    schema = CatalogSchema(user_table="students", placeholder_values=["", "n/a", "O'Neil"])
    sql = FallbackQueryBuilder(schema).build(1, 3)

    assert 'FROM "students"' in sql
    assert "<> 'O''Neil'" in sql


@pytest.mark.parametrize("user_id,top_k", [(1, 0), (1, -4), ("1", 3), (1, 2.5), (True, 3), (None, 3)])
def test_fallback_query_rejects_malformed_input(user_id, top_k):
    with pytest.raises(ValueError):
        FallbackQueryBuilder().build(user_id, top_k)


def test_request_validation():
    assert RecommendationRequest(user_id=5, top_k=1).top_k == 1
    with pytest.raises(ValueError):
        RecommendationRequest(user_id=5, top_k=0)
    with pytest.raises(ValueError):
        RecommendationRequest(user_id="5", top_k=3)


def test_parse_first_column_skips_non_numeric():
    response = ExecuteQueryResponse(rows=[[12, "Engineering"], ["x", "y"]])
    assert parse_first_column_ids(response) == [12]


def test_parse_first_column_conversions():
    response = ExecuteQueryResponse(rows=[
        [3.9, "a"],
        [-2.7],
        ["17"],
        [" 8 "],
        ["4.0"],
        [Decimal("11")],
        [None, 5],
        [True],
        [],
        [{"id": 1}],
        [float("nan")],
        [[1, 2]],
    ])
    assert parse_first_column_ids(response) == [3, -2, 17, 8, 4, 11]


def test_parse_first_column_empty():
    assert parse_first_column_ids(ExecuteQueryResponse()) == []
    assert parse_first_column_ids(ExecuteQueryResponse(rows=[], message="ok")) == []


def test_stringify_results():
    response = ExecuteQueryResponse(rows=[[1.0, 2.5, True, None, {"b": 1, "a": [1]}, ["x"], "txt"]])
    assert stringify_results(response) == [["1", "2.5", "true", "NULL", '{"a":[1],"b":1}', '["x"]', "txt"]]

    assert stringify_results(ExecuteQueryResponse(message="done")) == [["done"]]
    assert stringify_results(ExecuteQueryResponse(changes=3)) == [["3 row(s) affected"]]
    assert stringify_results(ExecuteQueryResponse()) == []


def test_non_positional_rows_are_consistent():
    response = ExecuteQueryResponse(rows=[{"id": 7, "titre": "BTS"}, (9, "Licence")])

    assert parse_first_column_ids(response) == [9]
    assert stringify_results(response) == [['{"id":7,"titre":"BTS"}'], ["9", "Licence"]]


def test_retry_policy_default_signatures():
    policy = RetryPolicy()

    assert policy.should_retry(ServiceError("ERROR: function jsonb_array_elements_text(json) does not exist"))
    assert policy.should_retry(ServiceError("could not identify an equality operator for type JSON"))
    assert policy.should_retry(ServiceError("HTTP 400: Bad Request"))
    assert policy.should_retry(ServiceError('syntax error at or near ".."'))
    assert policy.should_retry(ServiceTimeoutError("ask", 5))
    assert not policy.should_retry(ServiceError("connection refused"))


def test_retry_policy_ignores_pipeline_failures():
    """No-SQL-found, ellipsis and empty results go to fallback, whatever their text."""
    policy = RetryPolicy(["no sql", "empty", "ellipses"])

    assert policy.matches(str(EllipsisRejectedError("The SQL query contains ellipses (…)."))) == "ellipses"
    assert not policy.should_retry(NoSQLFoundError())
    assert not policy.should_retry(EllipsisRejectedError("The SQL query contains ellipses (…)."))
    assert not policy.should_retry(EmptyResultError())


def test_retry_policy_custom_signatures():
    policy = RetryPolicy(["Deadlock detected", "  "])

    assert policy.signatures == ["deadlock detected"]
    assert policy.should_retry(ServiceError("ERROR: deadlock detected"))
    assert not policy.should_retry(ServiceError("function jsonb_array_elements_text does not exist"))
    assert policy.matches("DEADLOCK DETECTED here") == "deadlock detected"
