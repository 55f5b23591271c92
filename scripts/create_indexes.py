import argparse
import asyncio
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pet_directory.config import settings
from pet_directory.database import close_mongo_connection, connect_to_mongo, ensure_indexes, get_database


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the MongoDB indexes used by search and rating aggregation.")
    parser.add_argument(
        "--db-name",
        default=None,
        help=f"Target database (default: {settings.db_name}).",
    )
    return parser.parse_args()


async def _run() -> None:
    args = _parse_args()
    if args.db_name:
        settings.db_name = args.db_name

    await connect_to_mongo()
    try:
        database = get_database()
        await ensure_indexes(database)
        for collection_name in await database.list_collection_names():
            indexes = await database[collection_name].index_information()
            print(f"{collection_name}: {', '.join(sorted(indexes))}")
    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(_run())
