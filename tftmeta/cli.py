"""
Command line entry point.

    tftmeta validate-config [--env-file FILE] [--verbose]
    tftmeta migrate
    tftmeta ingest FILE --patch 15.2c --region kr --tier CHALLENGER
    tftmeta snapshot --patch 15.2c --region kr [--tier CHALLENGER]
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from tftmeta.config import Config
from tftmeta.constants import RankTier, Region
from tftmeta.data_models.composition import PartitionKey
from tftmeta.data_models.response import to_jsonable
from tftmeta.database.composition_operations import CompositionOperations
from tftmeta.database.database import Database
from tftmeta.services.cache import MetaCache
from tftmeta.services.ingestion import IngestionService
from tftmeta.services.meta import MetaService
from tftmeta.utils.exceptions import ConfigurationError, MetaEngineException
from tftmeta.utils.logger import setup_logger
from tftmeta.utils.redis_utils import RedisUtils

logger = setup_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='tftmeta', description='TFT composition meta engine')
    subparsers = parser.add_subparsers(dest='command', required=True)

    validate = subparsers.add_parser('validate-config', help='Validate configuration and exit')
    validate.add_argument('--env-file', help='Path to a .env file loaded on top of the environment')
    validate.add_argument('--verbose', action='store_true', help='Print the configuration summary')

    subparsers.add_parser('migrate', help='Create database tables')

    ingest = subparsers.add_parser('ingest', help='Ingest a JSON file of match payloads')
    ingest.add_argument('file', help='JSON file holding one match or a list of matches')
    ingest.add_argument('--patch', required=True)
    ingest.add_argument('--region', required=True)
    ingest.add_argument('--tier', required=True)

    snapshot = subparsers.add_parser('snapshot', help='Print a meta snapshot as JSON')
    snapshot.add_argument('--patch')
    snapshot.add_argument('--region')
    snapshot.add_argument('--tier', help='Rank tier; omit to combine every tier')

    return parser


def validate_config(env_file: Optional[str], verbose: bool) -> int:
    try:
        Config.load(env_file)
        Config.validate()
    except ConfigurationError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for problem in e.problems:
            print(f"  - {problem}", file=sys.stderr)
        return 1

    print("Configuration is valid")
    if verbose:
        print(json.dumps(Config.summary(), indent=2))
    return 0


def _partition(patch: str, region: str, tier: str) -> PartitionKey:
    region_enum = Region.parse(region)
    tier_enum = RankTier.parse(tier)
    problems = []
    if region_enum is None:
        problems.append(f"unknown region '{region}'")
    if tier_enum is None:
        problems.append(f"unknown rank tier '{tier}'")
    if problems:
        raise ConfigurationError(problems)
    return PartitionKey(patch, region_enum, tier_enum)


async def migrate() -> int:
    db = Database()
    try:
        await db.initialize()
    finally:
        await db.close()
    print("Database schema is up to date")
    return 0


async def ingest(path: str, patch: str, region: str, tier: str) -> int:
    partition = _partition(patch, region, tier)
    with open(path, 'r', encoding='utf-8') as fh:
        payload = json.load(fh)
    matches = payload if isinstance(payload, list) else [payload]

    db = Database()
    await db.initialize()
    try:
        store = CompositionOperations(db)
        service = IngestionService(store)
        result = await service.ingest_matches(matches, partition)
    finally:
        await db.close()

    print(json.dumps(to_jsonable(result), indent=2))
    return 0


async def snapshot(patch: Optional[str], region: Optional[str], tier: Optional[str]) -> int:
    db = Database()
    await db.initialize()
    redis_client = await RedisUtils.create_redis_client()
    try:
        service = MetaService(CompositionOperations(db), MetaCache(redis_client))
        result = await service.get_snapshot(patch, region, tier)
    finally:
        if redis_client is not None:
            await redis_client.aclose()
        await db.close()

    print(json.dumps(to_jsonable(result), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        match args.command:
            case 'validate-config':
                return validate_config(args.env_file, args.verbose)
            case 'migrate':
                return asyncio.run(migrate())
            case 'ingest':
                return asyncio.run(ingest(args.file, args.patch, args.region, args.tier))
            case 'snapshot':
                return asyncio.run(snapshot(args.patch, args.region, args.tier))
    except MetaEngineException as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e.user_message}", file=sys.stderr)
        return 1
    return 2


if __name__ == '__main__':
    sys.exit(main())
