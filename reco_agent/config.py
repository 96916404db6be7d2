"""
Configuration for the recommendation agent.
Values come from environment variables, optionally loaded from a .env file.
"""

import os
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .core.retry_policy import DEFAULT_RETRYABLE_SIGNATURES


class AgentConfig(BaseModel):
    """Agent configuration model."""
    completion_backend: Literal["langgraph", "mistral"] = "langgraph"
    query_backend: Literal["http", "databricks"] = "http"

    query_candidates: List[str] = ["http://127.0.0.1:3001", "http://localhost:3001"]
    langgraph_candidates: List[str] = ["http://127.0.0.1:2024", "http://localhost:2024"]
    assistant_id: str = "my_agent"
    dataset_uuid: str = "default"

    mistral_api_key: Optional[str] = None
    mistral_model: str = "mistral-large-latest"

    databricks_hostname: Optional[str] = None
    databricks_http_path: Optional[str] = None
    databricks_token: Optional[str] = None

    ping_timeout: float = Field(12.0, gt=0)
    ask_timeout: float = Field(600.0, gt=0)
    sql_timeout: float = Field(300.0, gt=0)

    retryable_error_signatures: List[str] = Field(
        default_factory=lambda: list(DEFAULT_RETRYABLE_SIGNATURES)
    )
    single_statement_only: bool = False
    log_level: str = "INFO"

    def with_device_lan(self, lan_ip: Optional[str]) -> "AgentConfig":
        """Prepend the candidate URLs of a machine on the local network."""
        if not lan_ip:
            return self
        return self.model_copy(update={
            "query_candidates": [f"http://{lan_ip}:3001"] + self.query_candidates,
            "langgraph_candidates": [f"http://{lan_ip}:2024"] + self.langgraph_candidates,
        })


def _split(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def load_configuration() -> AgentConfig:
    """Load configuration from environment variables."""
    load_dotenv()

    env = {
        'completion_backend': os.getenv('RECO_COMPLETION_BACKEND'),
        'query_backend': os.getenv('RECO_QUERY_BACKEND'),
        'query_candidates': _split(os.getenv('RECO_QUERY_URLS')),
        'langgraph_candidates': _split(os.getenv('RECO_LANGGRAPH_URLS')),
        'assistant_id': os.getenv('RECO_ASSISTANT_ID'),
        'dataset_uuid': os.getenv('RECO_DATASET_UUID'),
        'mistral_api_key': os.getenv('MISTRAL_API_KEY'),
        'mistral_model': os.getenv('MISTRAL_MODEL'),
        'databricks_hostname': os.getenv('DATABRICKS_SERVER_HOSTNAME'),
        'databricks_http_path': os.getenv('DATABRICKS_HTTP_PATH'),
        'databricks_token': os.getenv('DATABRICKS_ACCESS_TOKEN'),
        'ping_timeout': os.getenv('RECO_PING_TIMEOUT'),
        'ask_timeout': os.getenv('RECO_ASK_TIMEOUT'),
        'sql_timeout': os.getenv('RECO_SQL_TIMEOUT'),
        'retryable_error_signatures': _split(os.getenv('RECO_RETRYABLE_ERRORS')),
        'single_statement_only': os.getenv('RECO_SINGLE_STATEMENT_ONLY'),
        'log_level': os.getenv('LOG_LEVEL'),
    }

    config = AgentConfig(**{key: value for key, value in env.items() if value is not None})
    return config.with_device_lan(os.getenv('RECO_DEVICE_LAN'))
