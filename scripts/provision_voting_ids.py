#!/usr/bin/env python3
"""
Provision voting IDs into the configured document store.

This script reads credential files (JSON arrays or CSV with an
id,playerName,gameEdition header) and merges them into the voting-ids
collection. IDs that are already provisioned are skipped, so the script
can be re-run safely.

Usage:
    python scripts/provision_voting_ids.py credentials.json [more.csv ...] [--backend github]

Environment Variables:
    STORE_BACKEND: github, redis or memory (default: github)
    GITHUB_TOKEN: Token with write access to the election repository
    REDIS_HOST / REDIS_PORT / REDIS_PASSWORD: Redis connection for the redis backend
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List

from tqdm import tqdm

from services.election_api.collections import ElectionCollections
from services.election_api.config import Settings
from services.election_api.errors import ElectionError
from services.election_api.provisioning import merge_credentials, read_credentials
from services.election_api.retry import CasRetryCoordinator
from services.election_api.stores import create_store
from services.shared.models import VotingCredential


def load_files(paths: List[Path]) -> List[VotingCredential]:
    """Read every credential file, with a progress bar per file."""
    credentials: List[VotingCredential] = []
    for path in paths:
        if not path.exists():
            raise ElectionError(f"Credential file does not exist: {path}")
        for credential in tqdm(read_credentials(path), desc=path.name, unit="ids"):
            credentials.append(credential)
    return credentials


async def provision(settings: Settings, credentials: List[VotingCredential]) -> dict:
    store = create_store(settings)
    try:
        return await merge_credentials(
            ElectionCollections(store),
            CasRetryCoordinator(settings.MAX_RETRIES, settings.RETRY_BACKOFF_SECONDS),
            credentials,
        )
    finally:
        await store.close()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Provision voting IDs into the election document store'
    )
    parser.add_argument(
        'files',
        nargs='+',
        type=Path,
        help='JSON or CSV credential files'
    )
    parser.add_argument(
        '--backend',
        choices=['github', 'redis', 'memory'],
        help='Override STORE_BACKEND'
    )

    args = parser.parse_args()

    settings = Settings()
    if args.backend:
        settings.STORE_BACKEND = args.backend

    if not settings.store_configured:
        print(f"✗ Credentials for the {settings.STORE_BACKEND} store are not configured", file=sys.stderr)
        sys.exit(1)

    try:
        credentials = load_files(args.files)
        print(f"Read {len(credentials):,} credential(s)")

        stats = asyncio.run(provision(settings, credentials))

        print(f"\n✓ Provisioning complete!")
        print(f"  Added: {stats['added']:,}")
        print(f"  Skipped (already provisioned): {stats['skipped']:,}")

    except KeyboardInterrupt:
        print("\n\n✗ Provisioning interrupted by user", file=sys.stderr)
        sys.exit(1)
    except ElectionError as e:
        print(f"\n✗ {e.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
