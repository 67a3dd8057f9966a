"""String key-value persistence for users, documents and the login snapshot.

Collections are stored as JSON arrays under fixed keys and always rewritten
whole. Reads, mutations and writes are not atomic; the service assumes a single
active writer.
"""

import json
from typing import Dict, List, Optional

from .db import get_session, init_db
from .logger import get_logger
from .models import Document, StoreEntry, User
from . import config

logger = get_logger(__name__)

USERS_KEY = "dc_users"
DOCS_KEY = "dc_docs"
SESSION_KEY = "dc_session"


class KeyValueStore:
    """Synchronous get/set string store."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self, items: Optional[Dict[str, str]] = None):
        self.items: Dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """Key-value pairs kept in the ``store_entry`` table."""

    def __init__(self, engine):
        self.engine = engine
        init_db(engine)

    def get_item(self, key: str) -> Optional[str]:
        with get_session(self.engine) as session:
            entry = session.get(StoreEntry, key)
            return entry.value if entry else None

    def set_item(self, key: str, value: str) -> None:
        with get_session(self.engine) as session:
            entry = session.get(StoreEntry, key)
            if entry:
                entry.value = value
            else:
                entry = StoreEntry(key=key, value=value)
            session.add(entry)
            session.commit()

    def remove_item(self, key: str) -> None:
        with get_session(self.engine) as session:
            entry = session.get(StoreEntry, key)
            if entry:
                session.delete(entry)
                session.commit()


class Storage:
    """Collections of records on top of a :class:`KeyValueStore`.

    This is the capability handed to the access-control, ingestion and HTTP
    layers; tests build it over :class:`MemoryKeyValueStore`.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    # ---------- raw collections ----------

    def get(self, collection: str) -> List[dict]:
        raw = self.kv.get_item(collection)
        if not raw:
            return []
        try:
            records = json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding unparseable collection '{collection}'")
            return []
        if not isinstance(records, list):
            return []
        return [r for r in records if isinstance(r, dict)]

    def put(self, collection: str, records: List[dict]) -> None:
        self.kv.set_item(collection, json.dumps(records))

    # ---------- typed helpers ----------

    def get_users(self) -> List[User]:
        users = []
        for record in self.get(USERS_KEY):
            try:
                users.append(User.model_validate(record))
            except ValueError:
                logger.warning("Skipping malformed user record")
        return users

    def save_users(self, users: List[User]) -> None:
        self.put(USERS_KEY, [u.model_dump() for u in users])

    def get_documents(self) -> List[Document]:
        docs = []
        for record in self.get(DOCS_KEY):
            try:
                docs.append(Document.model_validate(record))
            except ValueError:
                logger.warning("Skipping malformed document record")
        return docs

    def save_documents(self, docs: List[Document]) -> None:
        self.put(DOCS_KEY, [d.model_dump() for d in docs])

    def init(self) -> None:
        """Seed the administrator account when no users exist."""
        if self.get_users():
            return
        admin = User(
            id=config.ADMIN_ID,
            username=config.ADMIN_USERNAME,
            password=config.ADMIN_PASSWORD,
            role="admin",
            accessible_docs=[],
        )
        self.save_users([admin])
        logger.info("Seeded administrator account")

    # ---------- session snapshot ----------

    def get_session(self) -> Optional[User]:
        raw = self.kv.get_item(SESSION_KEY)
        if not raw:
            return None
        try:
            return User.model_validate(json.loads(raw))
        except ValueError:
            return None

    def save_session(self, user: User) -> None:
        self.kv.set_item(SESSION_KEY, json.dumps(user.model_dump(exclude={"password"})))

    def clear_session(self) -> None:
        self.kv.remove_item(SESSION_KEY)
