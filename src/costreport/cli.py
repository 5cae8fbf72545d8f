import argparse
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .assembler import assemble
from .bundles import load_record, read_bundle
from .config import CLIConfig, EngineConfig, load_cli_config, load_config
from .deltas import apply_proposals
from .errors import BundleError, DocumentError
from .models import CostEstimate, DocumentKind, ProjectReport
from .reporting import make_summary_text

logger = logging.getLogger(__name__)


def run(cli_config: CLIConfig, engine_config: EngineConfig, now: Optional[datetime] = None) -> int:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    logger.info("[costreport] Reading %s bundle from %s", cli_config.kind, cli_config.bundle_path)
    record = load_record(cli_config.kind, read_bundle(cli_config.bundle_path))
    if cli_config.proposals_path is not None:
        logger.info("[costreport] Applying proposals from %s", cli_config.proposals_path)
        proposals = read_bundle(cli_config.proposals_path)
        if not isinstance(proposals, dict):
            raise BundleError(f"{cli_config.proposals_path} must hold a JSON object")
        record = apply_proposals(record, proposals, min_confidence=cli_config.min_confidence)
    artifact = assemble(record, config=engine_config, now=now)
    logger.info("[costreport] %s: %d page(s), %d bytes", artifact.filename, artifact.page_count, len(artifact.content))
    for warning in artifact.warnings:
        logger.warning("           %s", warning)

    items = ()
    if isinstance(record, CostEstimate):
        items = record.items
    elif isinstance(record, ProjectReport) and record.estimate is not None:
        items = record.estimate.items
    if items:
        logger.info(make_summary_text(items))

    target = cli_config.output_dir / artifact.filename
    if cli_config.dry_run:
        logger.info("[costreport] Dry run; not writing %s", target)
        return 0
    cli_config.output_dir.mkdir(parents=True, exist_ok=True)
    target.write_bytes(artifact.content)
    logger.info("[costreport] Wrote %s", target)
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render a construction document bundle to PDF")
    parser.add_argument("kind", choices=[kind.value for kind in DocumentKind], help="Document kind to generate")
    parser.add_argument("bundle", help="Path to the JSON record bundle")
    parser.add_argument("--output-dir", help="Directory for the generated PDF (default: current directory)")
    parser.add_argument("--tax-percent", help="Override the VAT percentage (default 25)")
    parser.add_argument(
        "--post-tax-addons",
        help="Comma-separated document kinds whose addons are added after tax",
    )
    parser.add_argument("--proposals", help="JSON file with proposed checkpoints and/or items to merge before rendering")
    parser.add_argument("--min-confidence", help="Ignore checkpoint proposals below this confidence (default 0)")
    parser.add_argument("--dry-run", action="store_true", help="Render but do not write the PDF")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    load_dotenv(Path.cwd() / ".env")
    cli_config = load_cli_config(args)
    logging.basicConfig(level=getattr(logging, cli_config.log_level, logging.INFO), format="%(message)s")
    try:
        return run(cli_config, load_config(os.environ, args))
    except DocumentError as exc:
        logger.error("Cannot generate document: %s", exc)
        return 2
    except Exception:  # pragma: no cover
        logger.exception("Fatal error during document generation")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
