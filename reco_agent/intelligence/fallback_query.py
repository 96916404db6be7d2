"""
Deterministic fallback query for formation recommendations.
Builds a token-overlap scoring query straight from the user's stored
preferences, with no language model involved.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class CatalogSchema:
    """Names of the relations and columns the fallback query reads."""
    user_table: str = "user"
    formations_table: str = "formations"
    subjects_table: str = "matieres_enseignees"
    sectors_table: str = "debouches_secteurs"
    specialties_table: str = "specialites_favorisees"
    preferences_column: str = "orientation_choices"
    specialties_column: str = "specialites"
    budget_column: str = "budget"
    placeholder_values: List[str] = field(default_factory=lambda: ["", "N/A"])


class FallbackQueryBuilder:
    """
    Builds the model-free scoring query.

    score = number of the user's training types equal to the formation type
          + number of formation domains matching a taught subject
          + number of job sectors matching an outcome sector
          + number of the user's specialties favoured by the formation
    """

    # Preference keys stored in the user's orientation choices JSON
    PREFERENCE_KEYS = {
        "tt": "training_types",
        "fd": "formation_domains",
        "js": "job_sectors",
    }

    def __init__(self, schema: Optional[CatalogSchema] = None):
        self.schema = schema or CatalogSchema()

    def build(self, user_id: int, top_k: int) -> str:
        """
        Build the fallback SQL for one user.

        Args:
            user_id: Identifier of the requesting user
            top_k: Number of formations to return (>= 1)

        Returns:
            A single SELECT statement ending in "LIMIT top_k;"

        Raises:
            ValueError: If user_id or top_k is not an integer, or top_k < 1
        """
        for name, value in (("user_id", user_id), ("top_k", top_k)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        if top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {top_k}")

        s = self.schema
        ctes = [
            f"u AS (\n"
            f"  SELECT id, {s.preferences_column}, {s.specialties_column}, {s.budget_column}\n"
            f"  FROM {_quote(s.user_table)}\n"
            f"  WHERE id = {int(user_id)}\n"
            f")"
        ]
        for alias, key in self.PREFERENCE_KEYS.items():
            ctes.append(self._token_cte(alias, f"u.{s.preferences_column}->'{key}'"))
        ctes.append(self._token_cte("us", f"u.{s.specialties_column}"))

        sql = (
            "WITH " + ",\n".join(ctes) + "\n"
            "SELECT\n"
            "  f.id AS formation_id,\n"
            "  f.titre,\n"
            f"  ({self._score_expression()}) AS score\n"
            f"FROM {_quote(s.formations_table)} f\n"
            "WHERE\n"
            f"  {self._present('f.titre')}\n"
            f"  AND {self._present('f.etablissement')}\n"
            f"  AND {self._budget_ceiling()}\n"
            "ORDER BY score DESC NULLS LAST, f.id\n"
            f"LIMIT {int(top_k)};"
        )

        logger.info(f"Built fallback SQL for user {user_id} (top_k={top_k})")
        return sql

    def _token_cte(self, alias: str, json_expr: str) -> str:
        return (
            f"{alias} AS (\n"
            f"  SELECT lower(trim(value)) AS v\n"
            f"  FROM u, LATERAL json_array_elements_text({json_expr}) AS value\n"
            f")"
        )

    def _score_expression(self) -> str:
        s = self.schema
        terms = [
            "COALESCE((SELECT COUNT(*) FROM tt WHERE lower(trim(f.type_formation)) = tt.v), 0)",
            "COALESCE((\n"
            "      SELECT COUNT(*) FROM fd\n"
            f"      JOIN {_quote(s.subjects_table)} me ON lower(trim(me.matiere)) = fd.v\n"
            "      WHERE me.formation_id = f.id\n"
            "    ), 0)",
            "COALESCE((\n"
            "      SELECT COUNT(*) FROM js\n"
            f"      JOIN {_quote(s.sectors_table)} ds ON lower(trim(ds.secteur)) = js.v\n"
            "      WHERE ds.formation_id = f.id\n"
            "    ), 0)",
            "COALESCE((\n"
            "      SELECT COUNT(*) FROM us\n"
            f"      JOIN {_quote(s.specialties_table)} sf\n"
            "        ON sf.formation_id = f.id AND lower(trim(sf.specialite)) = us.v\n"
            "    ), 0)",
        ]
        return "\n    " + "\n    + ".join(terms) + "\n  "

    def _present(self, column: str) -> str:
        placeholders = " AND ".join(
            f"{column} <> '{_escape(value)}'" for value in self.schema.placeholder_values
        )
        return f"{column} IS NOT NULL AND {placeholders}" if placeholders else f"{column} IS NOT NULL"

    def _budget_ceiling(self) -> str:
        budget = f"trim({self.schema.budget_column}::text)"
        numeric_budget = (
            f"(SELECT CASE WHEN {budget} ~ '^[0-9]+([.][0-9]+)?$' "
            f"THEN {budget}::double precision END FROM u)"
        )
        return (
            "(\n"
            "    f.prix_annuel IS NULL\n"
            f"    OR {numeric_budget} IS NULL\n"
            f"    OR f.prix_annuel <= {numeric_budget}\n"
            "  )"
        )


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def _escape(value: str) -> str:
    return value.replace("'", "''")
