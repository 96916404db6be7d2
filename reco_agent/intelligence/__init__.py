"""Intelligence layer - prompts, SQL extraction, fallback query, result parsing."""
from .prompts import build_simple_prompt, build_guided_prompt, build_retry_prompt
from .sql_extractor import extract_sql, fallback_extract_sql, extract_candidate_sql
from .fallback_query import FallbackQueryBuilder, CatalogSchema
from .result_parser import parse_first_column_ids, stringify_results
from .llm_service import LangGraphCompletionClient, MistralLLMService, create_llm_service

__all__ = [
    'build_simple_prompt',
    'build_guided_prompt',
    'build_retry_prompt',
    'extract_sql',
    'fallback_extract_sql',
    'extract_candidate_sql',
    'FallbackQueryBuilder',
    'CatalogSchema',
    'parse_first_column_ids',
    'stringify_results',
    'LangGraphCompletionClient',
    'MistralLLMService',
    'create_llm_service'
]
