#!/usr/bin/env python3
"""
Import a client snapshot for the coaching API.

Reads a JSON export (as produced by GET /api/v1/clients/export), checks
every record with the advisory validator and writes it to the configured
SNAPSHOT_PATH, where the API picks it up on its next start.

Usage:
    python scripts/import_clients.py clients.json
    python scripts/import_clients.py clients.json --dry-run

Requires:
    - .env file (or environment) with SNAPSHOT_PATH, unless --dry-run
"""

import sys
from pathlib import Path

# Add the project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from coaching_app.config.settings import get_settings  # noqa: E402
from coaching_app.core.clients.repository import ClientRepository  # noqa: E402
from coaching_app.core.clients.validation import validate_client_data  # noqa: E402


def summarize(repository: ClientRepository) -> int:
    """
    Print a summary of the loaded clients and any validation warnings.

    Returns the number of clients with warnings.
    """
    stats = repository.statistics()
    print(f"Found {stats.total_clients} clients ({stats.active_clients} active)")

    print("\nClients by membership type:")
    for membership_type, count in stats.membership_types.items():
        print(f"  {membership_type}: {count}")

    flagged = 0
    for client in repository.list_clients():
        result = validate_client_data(client.personal_info.to_dict())
        if not result.is_valid:
            flagged += 1
            name = client.personal_info.full_name or "unnamed"
            print(f"[WARN] Client {client.id} ({name}): {', '.join(result.errors)}")

    return flagged


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Import a client snapshot for the coaching API')
    parser.add_argument('file', help='Snapshot JSON file')
    parser.add_argument('--dry-run', action='store_true', help='Validate only, don\'t write the snapshot')
    args = parser.parse_args()

    source = Path(args.file)
    if not source.exists():
        print(f"ERROR: Cannot find {args.file}")
        sys.exit(1)

    print(f"Reading clients from: {source}")
    repository = ClientRepository()
    if not repository.import_all(source.read_text(encoding='utf-8')):
        print("ERROR: File is not a valid client snapshot")
        sys.exit(1)

    flagged = summarize(repository)
    print(f"\nClients with warnings: {flagged}")

    if args.dry_run:
        print("\nDry run, nothing written")
        sys.exit(0)

    settings = get_settings()
    if not settings.snapshot_path:
        print("ERROR: SNAPSHOT_PATH is not configured")
        sys.exit(1)

    target = Path(settings.snapshot_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(repository.export_all(), encoding='utf-8')

    print(f"\n=== Import Complete ===")
    print(f"Wrote {len(repository)} clients to {target}")
    sys.exit(0)


if __name__ == '__main__':
    main()
