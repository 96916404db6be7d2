"""
Prompt templates for recommendation requests.
All builders are pure functions of (user_id, top_k[, error_hint]).
"""


def build_simple_prompt(user_id: int, top_k: int) -> str:
    """Short, chat-like request used for the first attempt."""
    return (
        f"I want {top_k} formation recommendations for the user id={user_id}.\n"
        "Use ONLY this user's own data: specialties, track (voie), stream (filiere), "
        "budget, academy/location, establishment, academic level, grades, and stored "
        "preferences (training_types, job_sectors, formation_domains)."
    )


_SCHEMA_HINT = """Useful schema:
- "user" (id, specialites JSON[], notes JSON[], voie, filiere, orientation_choices JSON, budget, academie, est_boursier, ...)
- "formations" (id, titre, resume_programme, type_formation, etablissement, prix_annuel, ...)
- "matieres_enseignees" (formation_id, matiere)
- "debouches_secteurs" (formation_id, secteur)
- "specialites_favorisees" (formation_id, specialite)"""

_JSON_RULES = """JSON rules:
- user.* JSON columns -> json_array_elements_text(<json>) or (<json>::jsonb with jsonb_array_elements_text(...))
- No DISTINCT directly on JSON columns; cast to text first.
- TEXT columns holding JSON -> NULLIF(col,'[]')::jsonb with jsonb_array_elements_text(...)"""


def _output_rules(top_k: int) -> str:
    return (
        "Output constraints:\n"
        "- Exactly 1 SELECT statement (a WITH CTE is allowed). No DDL, no multiple statements. No ellipsis.\n"
        "- First column: formation_id (= f.id).\n"
        f"- ORDER BY best relevance, LIMIT {top_k}.\n\n"
        "Answer ONLY with the SQL inside:\n"
        "```sql\n"
        "SELECT ... ;\n"
        "```"
    )


def build_guided_prompt(user_id: int, top_k: int) -> str:
    """Stricter prompt spelling out the schema and output constraints."""
    return (
        f"I want a personalised recommendation for user id = {user_id}.\n\n"
        f"Goal: propose the {top_k} most relevant formations for this user, using "
        "their specialties, track, budget, location, establishment, academic level, "
        "grades and stored preferences.\n\n"
        f"{_SCHEMA_HINT}\n\n"
        f"{_JSON_RULES}\n\n"
        f"{_output_rules(top_k)}"
    )


def build_retry_prompt(user_id: int, top_k: int, error_hint: str) -> str:
    """Guided prompt carrying the previous attempt's error message."""
    return (
        "The previous query failed:\n\n"
        f"{error_hint.strip()}\n\n"
        f"Regenerate ONE correct PostgreSQL query recommending {top_k} formations "
        f"for user id = {user_id}, STRICTLY following these rules.\n\n"
        f"{_SCHEMA_HINT}\n\n"
        f"{_JSON_RULES}\n\n"
        f"{_output_rules(top_k)}"
    )
