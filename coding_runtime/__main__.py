# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Command line entrypoint: `python -m coding_runtime <command>`.
"""

import sys
import logging
import asyncio
import argparse

from pathlib import Path
from dotenv import load_dotenv

from .config import settings
from .llm import create_provider
from .events import EventBus
from .events.event_bus_utils import log_to_stdout
from .agents import Agent, SubAgentFactory
from .errors import AgentRuntimeError
from .tools import SubAgentTool
from .types.event_types import EventType
from .types.subagent_types import Specialization, SubAgentModelConfig

logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="coding_runtime")
    parser.add_argument("--provider", type=str, default=settings.PROVIDER, help="anthropic, openai or gemini")
    parser.add_argument("--model", type=str, default=None, help="Model name (defaults per provider)")
    parser.add_argument("--workdir", type=Path, default=settings.WORKDIR, help="Project directory the tools operate on")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print tool and agent events")
    parser.add_argument("--log-level", type=str, default=settings.LOG_LEVEL)

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Answer a single prompt and exit")
    run_parser.add_argument("prompt", nargs="?", default=None)
    run_parser.add_argument(
        "--prompt-file", type=Path, default=None, help="Read the prompt from a file instead"
    )

    subparsers.add_parser("chat", help="Interactive session; /clear, /summary and /exit are available")

    delegate_parser = subparsers.add_parser("delegate", help="Run a task on a specialized sub-agent")
    delegate_parser.add_argument("task")
    delegate_parser.add_argument(
        "--specialization",
        choices=[s.value for s in Specialization],
        default=None,
        help="Skip keyword classification and use this specialization",
    )

    return parser


def build_factory(args: argparse.Namespace) -> SubAgentFactory:
    """Sub-agents use the CLI's provider; the specialization keeps its sampling settings."""

    def provider_builder(config: SubAgentModelConfig):
        if config.provider == args.provider:
            return create_provider(config.provider, config.model, config.temperature, config.max_tokens)
        return create_provider(args.provider, args.model, config.temperature, config.max_tokens)

    return SubAgentFactory(provider_builder=provider_builder, workdir=args.workdir, verbose=args.verbose)


async def build_agent(args: argparse.Namespace, factory: SubAgentFactory) -> Agent:
    provider = create_provider(
        args.provider, args.model, temperature=settings.TEMPERATURE, max_tokens=settings.MAX_TOKENS
    )
    agent = Agent(provider=provider, workdir=args.workdir)
    agent.register_tool(SubAgentTool(factory, parent=agent))
    if not await agent.initialize():
        raise AgentRuntimeError(f"Could not initialize the {args.provider} provider; is its API key set?")
    return agent


async def run_prompt(args: argparse.Namespace, factory: SubAgentFactory) -> None:
    if args.prompt_file is not None:
        prompt = args.prompt_file.read_text()
    elif args.prompt is not None:
        prompt = args.prompt
    else:
        prompt = sys.stdin.read()

    agent = await build_agent(args, factory)
    answer = await agent.process_message(prompt, verbose=args.verbose)
    print(answer)


async def chat(args: argparse.Namespace, factory: SubAgentFactory) -> None:
    agent = await build_agent(args, factory)
    print("Type /exit to quit.")
    while True:
        try:
            user_input = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            break
        if not user_input:
            continue
        match user_input:
            case "/exit" | "/quit":
                break
            case "/clear":
                agent.clear_history()
                print("History cleared.")
                continue
            case "/summary":
                print(agent.get_conversation_summary() or "(empty)")
                continue

        try:
            answer = await agent.process_message(user_input, verbose=args.verbose)
        except AgentRuntimeError as e:
            logger.error(f"{type(e).__name__}: {e.message}")
            continue
        print(answer)


async def delegate(args: argparse.Namespace, factory: SubAgentFactory) -> None:
    result = await factory.delegate_task(args.task, specialization=args.specialization)
    if result.success:
        print(result.result)
        if result.metadata is not None:
            logger.info(
                f"tools used: {result.metadata.tools_used}, "
                f"execution time: {result.metadata.execution_time:.1f}s"
            )
    else:
        print(f"[{result.error.code}] {result.error.message}", file=sys.stderr)


async def main(args: argparse.Namespace) -> int:
    if args.verbose:
        event_bus = await EventBus.get_instance()
        event_bus.subscribe(set(EventType), log_to_stdout)

    factory = build_factory(args)
    try:
        match args.command:
            case "run":
                await run_prompt(args, factory)
            case "chat":
                await chat(args, factory)
            case "delegate":
                await delegate(args, factory)
    except AgentRuntimeError as e:
        logger.error(f"{type(e).__name__}: {e.message}")
        return 1
    finally:
        await factory.shutdown_all_agents()
    return 0


def cli() -> None:
    load_dotenv()
    parser = setup_parser()
    args = parser.parse_args()

    logging.captureWarnings(True)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(filename)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    sys.exit(asyncio.run(main(args)))


if __name__ == "__main__":
    cli()
