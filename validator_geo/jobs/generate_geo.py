"""CLI job that geolocates cluster validators and refreshes the dataset file."""

import argparse
import logging
from typing import List, Optional

from validator_geo.core.config import ConfigError, get_settings
from validator_geo.core.reconcile import CallBudget, ReconcileResult, reconcile
from validator_geo.core.store import load_dataset, save_dataset
from validator_geo.vendors import cluster_rpc, ip_api
from validator_geo.vendors.cluster_rpc import UpstreamUnavailable

logger = logging.getLogger(__name__)


def run_geo_job(
    *,
    rpc_url: Optional[str],
    budget: int,
    delay_ms: int,
    output_path: str,
) -> ReconcileResult:
    logger.info("Fetching validators...")
    candidates = cluster_rpc.list_candidates(rpc_url)
    logger.info("Found %d validators with IPs", len(candidates))

    existing = load_dataset(output_path)

    call_budget = CallBudget(limit=budget)
    result = reconcile(
        candidates,
        existing,
        call_budget,
        locate=ip_api.locate,
        delay_seconds=delay_ms / 1000.0,
    )
    logger.info(
        "Added %d new locations, total: %d (reused=%d missed=%d deferred=%d calls=%d, %d left)",
        result.located,
        len(result.records),
        result.reused,
        result.missed,
        result.deferred,
        result.calls_made,
        call_budget.remaining,
    )

    save_dataset(output_path, result.records)
    logger.info("Saved to %s", output_path)
    return result


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Geolocate cluster validators into a JSON dataset")
    parser.add_argument("--rpc-url", dest="rpc_url", default=settings.rpc_url, help="Cluster JSON-RPC endpoint")
    parser.add_argument(
        "--budget",
        dest="budget",
        type=int,
        default=settings.geo_call_budget,
        help="Maximum number of geolocation lookups this run",
    )
    parser.add_argument(
        "--delay-ms",
        dest="delay_ms",
        type=int,
        default=settings.geo_call_delay_ms,
        help="Pause between consecutive lookups, in milliseconds",
    )
    parser.add_argument(
        "--output",
        dest="output_path",
        default=settings.dataset_path,
        help="Dataset file to read and overwrite",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.budget < 0 or args.delay_ms < 0:
            raise ConfigError("--budget and --delay-ms must not be negative")
        run_geo_job(
            rpc_url=args.rpc_url,
            budget=args.budget,
            delay_ms=args.delay_ms,
            output_path=args.output_path,
        )
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except UpstreamUnavailable as exc:
        logger.error("Cluster RPC unavailable, aborting run: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
