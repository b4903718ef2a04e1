"""Rebuild every product's current stock from its transaction history.

    python -m stockroom.scripts.recompute_stock
"""
import asyncio

from stockroom.core.db import build_database
from stockroom.core.logging import setup_logging
from stockroom.services.ledger.ledger_service import recompute_all_stock


async def main():
    setup_logging()
    database = build_database()
    try:
        async with database.session() as session:
            result = await recompute_all_stock(session)
    finally:
        await database.dispose()

    print(f"Examined {result.examined} products, corrected {result.corrected}")
    for adjustment in result.adjustments:
        print(
            f"  {adjustment.internal_code}: "
            f"{adjustment.previous_stock} -> {adjustment.recomputed_stock}"
        )


if __name__ == "__main__":
    asyncio.run(main())
