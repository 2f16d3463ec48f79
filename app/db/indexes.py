"""
app/db/indexes.py

Purpose: Database index management

- Unique seat numbers and user ids
- Unique (seat_number, slot) pair so the database refuses a double booking
- Lookup indexes for dashboard filters and the audit trail
"""

from pymongo import ASCENDING, DESCENDING

from app.db.mongo import (
    get_users_collection,
    get_seats_collection,
    get_audit_collection,
)
from app.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes():
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = get_users_collection()
        seats = get_seats_collection()
        audit = get_audit_collection()

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS COLLECTION INDEXES
        # ==============================================

        await users.create_index("user_id", unique=True, name="user_id_unique")
        logger.debug("Created unique index on users.user_id")

        await users.create_index("email", unique=True, name="email_unique")
        logger.debug("Created unique index on users.email")

        # One occupant per seat per slot; unseated users (seat_number null) are skipped
        await users.create_index(
            [("seat_number", ASCENDING), ("slot", ASCENDING)],
            unique=True,
            partialFilterExpression={"seat_number": {"$type": "number"}},
            name="seat_slot_unique"
        )
        logger.debug("Created unique index on users.seat_number + slot")

        await users.create_index("fee_status", name="fee_status_idx")
        logger.debug("Created index on users.fee_status")

        await users.create_index("next_due_date", name="next_due_date_idx")
        logger.debug("Created index on users.next_due_date")

        # ==============================================
        # SEATS COLLECTION INDEXES
        # ==============================================

        await seats.create_index("number", unique=True, name="seat_number_unique")
        logger.debug("Created unique index on seats.number")

        await seats.create_index("status", name="seat_status_idx")
        logger.debug("Created index on seats.status")

        # ==============================================
        # AUDIT COLLECTION INDEXES
        # ==============================================

        await audit.create_index("audit_id", unique=True, name="audit_id_unique")
        await audit.create_index(
            [("user_id", ASCENDING), ("deleted_at", DESCENDING)],
            name="audit_user_idx"
        )
        logger.debug("Created indexes on audit_log")

        logger.info("✅ All database indexes created successfully")

        user_indexes = await users.index_information()
        seat_indexes = await seats.index_information()
        audit_indexes = await audit.index_information()

        logger.info(
            f"Index summary: Users={len(user_indexes)}, "
            f"Seats={len(seat_indexes)}, "
            f"Audit={len(audit_indexes)}"
        )

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio
    from app.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
