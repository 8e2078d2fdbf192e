"""
Comment Sync Entry Point

Run with: python main.py [--config config.yaml] [--env-file .env]

Exit status is 1 when the run could not start (configuration) or was aborted
by target schema validation; every other outcome exits 0.
"""

import argparse
import asyncio
import sys

import yaml

from comment_sync.config import Config
from comment_sync.core.factory import DocumentStoreFactory, NotifierFactory
from comment_sync.models.results import SyncSummary, WorkflowResult
from comment_sync.services.sync_pipeline import CommentSyncPipeline
from comment_sync.utils.exceptions import ConfigurationError
from comment_sync.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

RULE = "=" * 60


def _format_workflow(name: str, result: WorkflowResult | None) -> list[str]:
    if result is None:
        return [f"{name}: skipped"]
    status = "OK" if result.success else "FAILED"
    lines = [f"{name}: {status} - {result.message}"]
    if result.statistics is not None:
        stats = result.statistics
        lines.append(
            f"   total {stats.total}, processed {stats.processed}, "
            f"pending {stats.pending} ({stats.processing_rate}%)"
        )
    if result.error:
        lines.append(f"   error: {result.error}")
    return lines


def format_summary(summary: SyncSummary) -> str:
    """Render a sync summary as a boxed text report."""
    lines = [
        "",
        RULE,
        "📋 SYNC SUMMARY",
        RULE,
        f"✅ Success: {'Yes' if summary.success else 'No'}",
    ]

    if summary.error:
        lines.append(f"❌ Error: {summary.error}")

    if summary.schema_valid:
        lines.extend(
            [
                f"📝 Total Processed: {summary.processed_count}",
                f"💾 Successfully Written: {summary.written_count}",
                f"❌ Errors: {summary.error_count}",
                f"⏱️ Duration: {summary.duration_ms:.0f}ms",
            ]
        )

    if summary.before_stats and summary.after_stats:
        new_records = (
            summary.after_stats.unique_discussion_ids - summary.before_stats.unique_discussion_ids
        )
        lines.extend(
            [
                "",
                "📊 DATABASE STATS",
                f"📄 Before: {summary.before_stats.total_records} records",
                f"📄 After: {summary.after_stats.total_records} records",
                f"📈 New: {new_records} records",
            ]
        )

    if summary.errors:
        lines.extend(["", "❌ ERROR DETAILS"])
        lines.extend(
            f"{index}. {result.title} ({result.discussion_id}): {result.error}"
            for index, result in enumerate(summary.errors, 1)
        )

    if summary.reference_workflow or summary.card_workflow:
        lines.extend(["", "🔄 WORKFLOWS"])
        lines.extend(_format_workflow("Reference processing", summary.reference_workflow))
        lines.extend(_format_workflow("Card processing", summary.card_workflow))

    lines.extend([RULE, ""])
    return "\n".join(lines)


def load_config(yaml_path: str | None = None, env_file: str | None = None) -> Config:
    """
    Load configuration from the environment and an optional YAML file.

    Raises:
        ConfigurationError: If a value is malformed or the YAML cannot be parsed
    """
    try:
        return Config.from_env_or_yaml(yaml_path=yaml_path, env_file=env_file)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


async def run(config: Config) -> SyncSummary:
    """Build collaborators from configuration and run one sync."""
    store = DocumentStoreFactory.create(config)
    notifier = NotifierFactory.create(config.email)
    try:
        pipeline = CommentSyncPipeline(store, notifier, config)
        return await pipeline.sync()
    finally:
        await store.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Sync Notion comment threads into structured records"
    )
    parser.add_argument("--config", metavar="PATH", help="YAML configuration file")
    parser.add_argument("--env-file", metavar="PATH", help=".env file to load")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config, args.env_file)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    setup_logging(config.logging)

    try:
        summary = asyncio.run(run(config))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    print(format_summary(summary))
    return 0 if summary.schema_valid else 1


if __name__ == "__main__":
    sys.exit(main())
