"""
Main application entry point for the formation recommendation agent.
Provides a CLI interface that asks for recommendations and prints diagnostics.
"""

import sys
import logging

from reco_agent.config import AgentConfig, load_configuration
from reco_agent.core.agent import RecommendationAgent
from reco_agent.core.errors import ServiceError
from reco_agent.core.models import RecommendationRequest
from reco_agent.core.retry_policy import RetryPolicy
from reco_agent.data.query_service import HTTPQueryClient
from reco_agent.intelligence.llm_service import LangGraphCompletionClient, create_llm_service
from reco_agent.intelligence.result_parser import stringify_results
from reco_agent.logging_setup import setup_logging
from reco_agent.security.sql_validator import SQLValidator, ValidatorConfig


def create_completion_service(config: AgentConfig):
    """Build the Prompt-Completion Service selected in the configuration."""
    if config.completion_backend == "mistral":
        service = create_llm_service(config.mistral_api_key, config.mistral_model)
        if service is None:
            raise ValueError("MISTRAL_API_KEY is required for the mistral completion backend")
        return service

    return LangGraphCompletionClient(
        candidates=config.langgraph_candidates,
        assistant_id=config.assistant_id,
        dataset_uuid=config.dataset_uuid,
        ping_timeout=config.ping_timeout,
        ask_timeout=config.ask_timeout,
    )


def create_query_service(config: AgentConfig):
    """Build the Query Execution Service selected in the configuration."""
    if config.query_backend == "databricks":
        if not all([config.databricks_hostname, config.databricks_http_path, config.databricks_token]):
            raise ValueError("Databricks hostname, HTTP path and token are required for the databricks backend")
        from reco_agent.data.databricks_client import DatabricksClient
        return DatabricksClient(
            server_hostname=config.databricks_hostname,
            http_path=config.databricks_http_path,
            access_token=config.databricks_token,
            socket_timeout=config.sql_timeout,
        )

    return HTTPQueryClient(
        candidates=config.query_candidates,
        dataset_uuid=config.dataset_uuid,
        ping_timeout=config.ping_timeout,
        sql_timeout=config.sql_timeout,
    )


def initialize_agent(config: AgentConfig) -> RecommendationAgent:
    """
    Initialize the recommendation agent with all components.

    Args:
        config: Agent configuration
    """
    return RecommendationAgent(
        completion_service=create_completion_service(config),
        query_service=create_query_service(config),
        retry_policy=RetryPolicy(config.retryable_error_signatures),
        validator=SQLValidator(ValidatorConfig(single_statement=config.single_statement_only)),
        ping_timeout=config.ping_timeout,
        ask_timeout=config.ask_timeout,
        sql_timeout=config.sql_timeout,
    )


def print_outcome(outcome):
    """Pretty print a recommendation outcome."""
    print("\n" + "=" * 80)

    if outcome.error:
        print("❌ Recommendation failed")
        print(f"Error: {outcome.error}")
    else:
        print("✅ Recommendation successful")
        print(f"Formation ids: {', '.join(str(i) for i in outcome.recommended_ids)}")

    if outcome.attempts:
        print("\n🔁 Attempts:")
        for record in outcome.attempts:
            status = "ok" if record.succeeded else f"{record.error_kind.value}: {record.error}"
            print(f"  - {record.stage.value}: {status}")

    if outcome.last_sql:
        print("\n📊 Final SQL:")
        for line in outcome.last_sql.splitlines():
            print(f"  {line}")

    if outcome.last_answer_text:
        print("\n💬 Agent answer:")
        print(f"  {outcome.last_answer_text[:500]}")

    print("=" * 80)


def run_sql(agent: RecommendationAgent, sql: str):
    """Execute SQL directly and print the rows."""
    try:
        response = agent.query_service.execute_sql(sql)
    except ServiceError as e:
        print(f"\n❌ SQL error: {e}")
        return

    rows = stringify_results(response)
    if not rows:
        print("\n✅ SQL executed. (No rows)")
        return
    print(f"\n✅ SQL executed. {len(rows)} row(s)")
    for row in rows[:20]:
        print("  " + " | ".join(row))


def run_cli(agent: RecommendationAgent):
    """Run the interactive CLI."""
    print("\n" + "=" * 80)
    print("🎓 Formation Recommendation Agent")
    print("=" * 80)
    print("\nCommands:")
    print("  - '<user_id> <count>' to get recommendations (e.g. '42 5')")
    print("  - 'strict <user_id> <count>' to start with the guided prompt")
    print("  - 'sql <query>' to run a query directly")
    print("  - 'schema' to preview the dataset schema")
    print("  - 'exit' or 'quit' to exit")
    print("=" * 80 + "\n")

    while True:
        try:
            user_input = input("You: ").strip()

            if not user_input:
                continue

            if user_input.lower() in ['exit', 'quit', 'q']:
                print("\n👋 Goodbye!")
                break

            if user_input.lower() == 'schema':
                if not hasattr(agent.query_service, 'schema_preview'):
                    print("\nSchema preview is not available for this backend")
                    continue
                print("\n📋 Schema:")
                print(agent.query_service.schema_preview())
                continue

            if user_input.lower().startswith('sql '):
                run_sql(agent, user_input[4:])
                continue

            parts = user_input.split()
            simple_prompt = True
            if parts[0].lower() == 'strict':
                simple_prompt = False
                parts = parts[1:]

            try:
                request = RecommendationRequest(user_id=int(parts[0]), top_k=int(parts[1]))
            except (ValueError, IndexError):
                print("Usage: [strict] <user_id> <count>")
                continue

            outcome = agent.recommend(request, simple_prompt=simple_prompt)
            print_outcome(outcome)

        except KeyboardInterrupt:
            print("\n\n👋 Goodbye!")
            break
        except Exception as e:
            logging.error(f"Error processing request: {e}", exc_info=True)
            print(f"\n❌ An error occurred: {e}")


def main():
    """Main application entry point."""
    config = load_configuration()
    setup_logging(config.log_level)
    logger = logging.getLogger(__name__)

    try:
        agent = initialize_agent(config)
    except Exception as e:
        logger.error(f"Failed to initialize agent: {e}", exc_info=True)
        sys.exit(1)

    try:
        endpoints = agent.connect()
        print(f"🔌 Connected. Completion: {endpoints[0]} Query: {endpoints[1]}")
    except ServiceError as e:
        logger.warning(f"Services not reachable yet: {e}")

    try:
        run_cli(agent)
    finally:
        agent.close()


if __name__ == "__main__":
    main()
