import argparse
import asyncio
import logging
import sys
from pprint import pprint

from dotenv import load_dotenv

from storymine.exceptions import ProjectNotFoundError
from storymine.llm import LLMFactory
from storymine.models.agent_models import AgentResponse
from storymine.utils.config_parser import DEFAULT_PROMPTS_DIR, load_app_config
from storymine.workflows.orchestrator import ResearchAssistantOrchestrator

# --- LOGGING AND ENVIRONMENT SETUP ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)
# Suppress excessively noisy logs from underlying HTTP libraries for cleaner output
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)

load_dotenv()


def print_welcome_message(assistant_name: str, strategy_names, providers=None):
    """Prints the welcome message and instructions."""
    print(f"\n--- StoryMine: chat with {assistant_name} ---")
    print(f"Response strategies: {', '.join(strategy_names) or 'none (degraded replies only)'}")
    if providers:
        print("Configured LLM providers:")
        for key, display_name in providers.items():
            print(f"  - {key}: {display_name}")
    print("Type 'exit' or 'quit' to end the session.")
    print("Commands: /clear (forget this conversation), /save (store the transcript), /stats (corpus counts), /health (LLM provider status)")
    print("Example prompts:")
    print('  - "What kind of stories do you have?"')
    print('  - "Tell me about murders in the 1940s."')
    print('  - "Any police corruption cases?"')
    print("----------------------------------------------------------\n")


def display_response(assistant_name: str, response: AgentResponse):
    """Prints every part of an assistant response in a structured way."""
    print("\n" + "=" * 20 + f" {assistant_name} " + "=" * 20)
    print(f"\n>> {response.message}")

    if response.reasoning_steps:
        print("\n--- Reasoning ---")
        for step in response.reasoning_steps:
            print(f"  {step.step_number}. [{step.kind}, {step.confidence:.2f}] {step.description}")

    if response.follow_up_questions:
        print("\n--- Follow-up questions ---")
        for question in response.follow_up_questions:
            print(f"  - {question}")

    if response.investigative_leads:
        print("\n--- Investigative leads ---")
        for lead in response.investigative_leads:
            print(f"  - {lead}")

    assessment = response.confidence_assessment
    print(f"\nConfidence: {assessment.overall:.2f} ({assessment.reasoning})")
    for limitation in assessment.limitations:
        print(f"  ! {limitation}")
    print("\n" + "=" * 51 + "\n")


async def run_session(
    orchestrator: ResearchAssistantOrchestrator, project_id: str, user_id: str, assistant_name: str, providers=None
):
    print_welcome_message(assistant_name, orchestrator.strategy_names, providers)

    while True:
        try:
            prompt = (await asyncio.to_thread(input, "You: ")).strip()
            if prompt.lower() in ["exit", "quit"]:
                await orchestrator.save_conversation(project_id, user_id)
                print("\nGoodbye!")
                break
            if not prompt:
                continue

            if prompt == "/clear":
                await orchestrator.clear_conversation(project_id, user_id)
                print("\nConversation cleared.\n")
                continue
            if prompt == "/save":
                saved = await orchestrator.save_conversation(project_id, user_id)
                print("\nConversation saved.\n" if saved else "\nNothing was saved (see logs).\n")
                continue
            if prompt == "/stats":
                stats = await orchestrator.corpus_stats()
                print()
                pprint(stats if stats is not None else "Corpus statistics are unavailable.")
                print()
                continue
            if prompt == "/health":
                reports = await orchestrator.health_check()
                print()
                pprint(reports or "No response strategy depends on an LLM provider.")
                print()
                continue

            response = await orchestrator.process_turn(project_id, user_id, prompt)
            display_response(assistant_name, response)

        except ProjectNotFoundError as e:
            print(f"\n{e} Start the CLI with --project pointing at an existing project.")
            break
        except (KeyboardInterrupt, EOFError):
            print("\n\nSession interrupted by user. Goodbye!")
            break


def main():
    """Main function to run the interactive CLI."""
    parser = argparse.ArgumentParser(description="Chat with the StoryMine research assistant.")
    parser.add_argument("--project", default="default", help="ID of the research project to chat about.")
    parser.add_argument("--user", default="cli-user", help="ID of the user holding the conversation.")
    parser.add_argument("--database", default="storymine", help="Database key from databases.yaml.")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables before starting.")
    args = parser.parse_args()

    print("Initializing the research assistant (this may take a moment)...")
    try:
        app_config = load_app_config()
        orchestrator = ResearchAssistantOrchestrator.from_config(
            app_config,
            prompts_base_path=DEFAULT_PROMPTS_DIR,
            database_key=args.database,
            create_tables=args.create_tables,
        )
    except Exception as e:
        logging.critical("Failed to initialize orchestrator", exc_info=True)
        print(f"\nFATAL: Could not initialize the system. Error: {e}")
        return

    assistant_name = app_config.agents.research_assistant.get("name", "Jordi")
    providers = LLMFactory(llm_config=app_config.llms).get_available_providers()
    try:
        asyncio.run(run_session(orchestrator, args.project, args.user, assistant_name, providers))
    except KeyboardInterrupt:
        print("\n\nSession interrupted by user. Goodbye!")


if __name__ == "__main__":
    main()
