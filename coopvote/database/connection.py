import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from pymongo import ASCENDING, MongoClient
from pymongo.client_session import ClientSession

from coopvote.config import Settings

logger = logging.getLogger(__name__)

MEMBERS_COLLECTION_NAME = "members"
BRANCHES_COLLECTION_NAME = "branches"
ELECTIONS_COLLECTION_NAME = "elections"
POSITIONS_COLLECTION_NAME = "positions"
CANDIDATES_COLLECTION_NAME = "candidates"
BALLOTS_COLLECTION_NAME = "ballots"
LOGS_COLLECTION_NAME = "logs"

BALLOT_UNIQUE_INDEX = "uniq_member_election"


class Database:
    """Storage handle owned by the process bootstrap and passed to services.

    Wraps one ``MongoClient`` (thread-safe, pooled) and exposes the
    collections the voting services read and write.
    """

    def __init__(self, client: MongoClient, db_name: str, use_transactions: bool = True):
        self.client = client
        self.db = client[db_name]
        self.use_transactions = use_transactions

        self.members = self.db[MEMBERS_COLLECTION_NAME]
        self.branches = self.db[BRANCHES_COLLECTION_NAME]
        self.elections = self.db[ELECTIONS_COLLECTION_NAME]
        self.positions = self.db[POSITIONS_COLLECTION_NAME]
        self.candidates = self.db[CANDIDATES_COLLECTION_NAME]
        self.ballots = self.db[BALLOTS_COLLECTION_NAME]
        self.logs = self.db[LOGS_COLLECTION_NAME]

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        try:
            client = MongoClient(settings.mongo_uri)
            client.server_info()
            logger.info(f"Connected to MongoDB: {settings.mongo_db}")
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise
        database = cls(client, settings.mongo_db, use_transactions=settings.use_transactions)
        database.ensure_indexes()
        return database

    def ensure_indexes(self) -> None:
        # One ballot per (member, election): this index, not the pre-check,
        # is what makes casting exactly-once.
        self.ballots.create_index(
            [("member_id", ASCENDING), ("election_id", ASCENDING)],
            unique=True,
            name=BALLOT_UNIQUE_INDEX,
        )
        self.ballots.create_index("election_id")
        self.positions.create_index([("election_id", ASCENDING), ("order", ASCENDING)])
        self.candidates.create_index([("election_id", ASCENDING), ("position_id", ASCENDING)])
        self.members.create_index("status")
        self.members.create_index("branch_id")
        self.members.create_index("member_number", unique=True, sparse=True)
        self.logs.create_index("created_at")

    @contextmanager
    def transaction(self) -> Iterator[Optional[ClientSession]]:
        """Yield a session bound to a transaction, or ``None`` when disabled.

        The transaction commits when the block exits normally and aborts when
        it raises.
        """
        if not self.use_transactions:
            yield None
            return
        with self.client.start_session() as session:
            with session.start_transaction():
                yield session

    def close(self) -> None:
        try:
            self.client.close()
            logger.info("MongoDB connection closed")
        except Exception as e:
            logger.error(f"Error closing MongoDB connection: {e}")
