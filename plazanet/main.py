"""
PlazaNetInsights - Main Entry Point

Runs one derived view against the configured Observium instance and prints
the JSON result on stdout.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from plazanet.api.observium_client import ObserviumAPIClient
from plazanet.utils.config import Config
from plazanet.utils.errors import ConfigurationError
from plazanet.utils.logging_config import setup_logging
from plazanet.views.pipeline import PlazaNetPipeline


VIEWS = ("capacity", "critical", "saturated", "alerts", "cost", "tiers", "environment", "summary")


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        description="PlazaNetInsights - Network capacity, health and cost views",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Capacity utilization for one plaza
  python -m plazanet.main --view capacity --plaza Monterrey

  # Top 5 critical sites at an 80% utilization threshold
  python -m plazanet.main --view critical --limit 5 --threshold 80

  # Quarterly cost analysis
  python -m plazanet.main --view cost --period quarterly
        """
    )
    parser.add_argument(
        "--view",
        choices=VIEWS,
        required=True,
        help="Derived view to compute"
    )
    parser.add_argument(
        "--plaza",
        type=str,
        help="Restrict capacity, environment or summary views to one plaza"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum critical or saturated sites to list (default: 10)"
    )
    parser.add_argument(
        "--threshold",
        type=float,
        help="Critical-site utilization threshold, or temperature threshold for --view environment"
    )
    parser.add_argument(
        "--period",
        type=str,
        help="Biweekly period id for alerts (default: current) or monthly/quarterly/yearly for cost"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    return parser.parse_args(argv)


async def run_view(config: Config, args: argparse.Namespace) -> Dict[str, Any]:
    """
    Compute the requested view.

    Args:
        config: Application configuration
        args: Parsed arguments

    Returns:
        JSON-serializable view result
    """
    async with ObserviumAPIClient(config.observium, config.operational) as client:
        pipeline = PlazaNetPipeline.from_config(client, config)

        if args.view == "capacity":
            return await pipeline.get_site_capacity(args.plaza)
        if args.view == "critical":
            return await pipeline.get_critical_sites(args.limit, args.threshold)
        if args.view == "saturated":
            return await pipeline.get_saturated_sites(args.limit)
        if args.view == "alerts":
            return await pipeline.get_engineering_alerts(args.period or "current")
        if args.view == "cost":
            return await pipeline.get_cost_analysis(args.period or "monthly")
        if args.view == "tiers":
            return await pipeline.get_city_tiers()
        if args.view == "environment":
            threshold = 35.0 if args.threshold is None else args.threshold
            return await pipeline.get_environmental_summary(args.plaza, threshold)
        return await pipeline.get_executive_summary(args.plaza)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for PlazaNetInsights.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    args = parse_arguments(argv)

    try:
        config = Config()
    except ConfigurationError as error:
        logging.basicConfig(level=logging.ERROR)
        logging.getLogger(__name__).error(f"[ERROR] Failed to load configuration: {error}")
        return 1

    log_level = logging.DEBUG if args.verbose else config.log_level
    setup_logging(level=log_level, log_dir=config.log_dir)
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info(f"PlazaNetInsights - {args.view} view")
    logger.info(f"Timestamp: {datetime.now(timezone.utc).isoformat()}")
    logger.info("=" * 60)

    try:
        result = asyncio.run(run_view(config, args))
    except KeyboardInterrupt:
        logger.warning("[WARN] Operation interrupted by user")
        return 130
    except ValueError as error:
        logger.error(f"[ERROR] Invalid request: {error}")
        return 2

    json.dump(result, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")

    if result.get("source") != "live":
        logger.warning(f"[WARN] Served synthetic fallback ({result.get('fallback_reason')})")
    logger.info(f"[DONE] PlazaNetInsights - {args.view} complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
