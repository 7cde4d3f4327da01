"""Order import script.

Loads orders from an ``orders.json`` file written by the original Node
server into the configured store. Records without a status history are kept
as they are; their history is started on their first status change.

Usage:
    python -m scripts.import_orders path/to/orders.json
    python -m scripts.import_orders path/to/orders.json --dry-run
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from hidden_haven.config import get_settings
from hidden_haven.database import create_stores
from hidden_haven.models.order import OrderInDB
from hidden_haven.utils.logger import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import orders.json into the order store")
    parser.add_argument("source", type=Path, help="Path to the orders.json file")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate records without writing them",
    )
    return parser.parse_args()


def load_orders_file(path: Path) -> list[dict]:
    """Read the JSON array of order records."""
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("orders file must contain a JSON array")
    logger.info("Loaded %d records from %s", len(data), path)
    return data


async def import_orders(source: Path, *, dry_run: bool = False) -> int:
    """Import orders, skipping invalid records and ids that already exist."""
    settings = get_settings()
    stores = create_stores(settings)
    imported = 0
    try:
        await stores.connect()

        for record in load_orders_file(source):
            try:
                order = OrderInDB.model_validate(record)
            except ValidationError as e:
                logger.error("Skipping invalid order %s: %s", record.get("id", "unknown"), e)
                continue

            if dry_run:
                imported += 1
                continue

            try:
                await stores.orders.create(order)
            except ValueError as e:
                logger.warning("Skipping order %s: %s", order.id, e)
                continue

            imported += 1
            logger.info(
                "Imported order %s for shop %s: %d items, $%.2f, status %s",
                order.id,
                order.shopId,
                len(order.items),
                order.total,
                order.status,
            )

        logger.info("Order import completed! Total orders %s: %d",
                    "validated" if dry_run else "imported", imported)
        return imported

    finally:
        await stores.disconnect()


def main() -> None:
    """Entry point for the script."""
    args = _parse_args()
    asyncio.run(import_orders(args.source, dry_run=args.dry_run))


if __name__ == "__main__":
    main()
