"""
Command line entry point

    python -m subgraph_kit codegen > codegen.json
    python -m subgraph_kit schemas --environment production
    python -m subgraph_kit status --chain-id 8453 --resource uniswap [--watch]

Subgraph settings come from SUBGRAPH_* environment variables (or .env).
"""

import argparse
import asyncio
import json
import logging
import sys

from subgraph_kit.infrastructure.config import (
    Environment,
    SubgraphConfigs,
    SubgraphKitConfig,
    configure_logging,
    get_config,
)
from subgraph_kit.infrastructure.errors import SubgraphKitError
from subgraph_kit.infrastructure.query_client import QueryClient
from subgraph_kit.infrastructure.rpc import get_chain
from subgraph_kit.data_sources.schemas import generate_schemas_mapping
from subgraph_kit.services.codegen import dump_codegen_config
from subgraph_kit.services.sync_status import (
    SyncStatus,
    get_subgraph_indexing_status,
    watch_subgraph_indexing_status,
)

logger = logging.getLogger("SubgraphKit.CLI")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="subgraph_kit", description=__doc__.splitlines()[1].strip())
    parser.add_argument(
        "--environment",
        choices=[e.value for e in Environment],
        help="Override SUBGRAPH_ENV",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("codegen", help="Print the GraphQL codegen config as JSON")
    commands.add_parser("schemas", help="Print endpoint URLs per subgraph and chain")

    status = commands.add_parser("status", help="Print subgraph sync status")
    status.add_argument("--chain-id", type=int, required=True)
    status.add_argument("--resource", required=True)
    status.add_argument("--watch", action="store_true", help="Keep printing on every poll")

    return parser


def format_status(status: SyncStatus) -> str:
    state = "synced" if status.is_synced else f"{status.blocks_behind} blocks behind"
    errors = " (indexing errors)" if status.has_indexing_errors else ""
    return (
        f"{status.resource}@{status.chain.name}: subgraph {status.subgraph_block_number:,} / "
        f"network {status.network_block_number:,} - {state}{errors}"
    )


async def run_status(config: SubgraphKitConfig, chain_id: int, resource: str, watch: bool) -> int:
    chain = get_chain(chain_id)
    schema_config = config.schema_mapping_config()
    metadata_options = {"refetch_interval": config.polling.subgraph_metadata_interval}
    block_number_options = {"refetch_interval": config.polling.block_number_interval}

    async with QueryClient() as client:
        if not watch:
            status = await get_subgraph_indexing_status(
                client, chain, resource, schema_config, metadata_options, block_number_options
            )
            print(format_status(status))
            return 0 if status.is_synced else 1

        async for status in watch_subgraph_indexing_status(
            client, chain, resource, schema_config, metadata_options, block_number_options
        ):
            print(format_status(status), flush=True)
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = get_config()
    configure_logging(config.monitoring.log_level)
    if args.environment:
        config = config.with_environment(Environment(args.environment))

    try:
        if args.command == "codegen":
            print(dump_codegen_config(SubgraphConfigs(subgraphs=[config.subgraph_config()])))
            return 0

        if args.command == "schemas":
            mapping = generate_schemas_mapping(config.schema_mapping_config())
            print(json.dumps(mapping, indent=2))
            return 0

        return asyncio.run(run_status(config, args.chain_id, args.resource, args.watch))
    except SubgraphKitError as e:
        logger.error(e.message)
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
