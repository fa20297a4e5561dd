"""Command line entry point: replay a transcript through the orchestrator."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from contextweaver.application.orchestrator import VirtualMessageOrchestrator
from contextweaver.application.services import CheckpointScheduler
from contextweaver.config import Config, ConfigError, LoggingConfig, load_config
from contextweaver.domain.services import MemoryRetriever, TopicClassifier
from contextweaver.infrastructure.http import HttpMemoryRetriever, HttpTopicClassifier
from contextweaver.infrastructure.llm import LLMClient, LLMTopicClassifier
from contextweaver.presentation import (
    ReplaySpeechSession,
    TranscriptError,
    load_transcript,
    replay,
)

# Default logging for early startup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def configure_logging(config: LoggingConfig | None) -> None:
    """Configure logging based on config.

    Args:
        config: Logging configuration. If None, uses defaults.
    """
    if config is None:
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    if root_logger.handlers:
        formatter = logging.Formatter(config.format)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)

    if config.loggers:
        for logger_name, logger_level in config.loggers.items():
            individual_level = getattr(logging, logger_level.upper(), logging.INFO)
            logging.getLogger(logger_name).setLevel(individual_level)
            logger.debug("Set logger '%s' to level %s", logger_name, logger_level.upper())


def build_classifier(config: Config) -> TopicClassifier:
    """Use the classification service if configured, else the LLM."""
    service = config.services.classification
    if service is not None:
        logger.info("Using topic classification service: %s", service.endpoint)
        return HttpTopicClassifier(service)
    llm_config = config.llm["default"]
    logger.info("Using LLM topic classifier: %s", llm_config.model)
    return LLMTopicClassifier(LLMClient(llm_config))


def build_retriever(config: Config) -> MemoryRetriever | None:
    if config.services.retrieval is None:
        logger.info("No memory retrieval service configured, retrieval disabled")
        return None
    return HttpMemoryRetriever(config.services.retrieval)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="contextweaver",
        description="Replay a conversation transcript through the orchestrator.",
    )
    parser.add_argument(
        "--config", type=Path, default=Path("config.yaml"), help="path to config.yaml"
    )
    parser.add_argument("transcript", type=Path, help="path to the transcript YAML")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Run one replay and return the exit code."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
        steps = load_transcript(args.transcript)
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1
    except (ConfigError, TranscriptError) as e:
        logger.error("Failed to load input: %s", e)
        return 1

    configure_logging(config.logging)

    session = ReplaySpeechSession()
    orchestrator = VirtualMessageOrchestrator(
        speech_session=session,
        classifier=build_classifier(config),
        retriever=build_retriever(config),
        session=config.session,
        config=config.orchestrator,
        retrieval_limit=config.services.retrieval_limit,
    )

    scheduler = CheckpointScheduler(orchestrator, config.orchestrator.checkpoint_interval_ms)
    scheduler_task = asyncio.create_task(scheduler.start())
    try:
        await replay(orchestrator, session, steps)
    finally:
        await scheduler.stop()
        scheduler_task.cancel()
        await asyncio.gather(scheduler_task, return_exceptions=True)

    return 0


def run() -> None:
    """Run the async main function."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    run()
