from typing import List, Optional
from uuid import uuid4

from .errors import AuthFailure, NotFoundError, PermissionDenied, ValidationError
from .logger import get_logger
from .models import Document, User
from .store import Storage

logger = get_logger(__name__)


def can_view_all_documents(user: User) -> bool:
    return user.role == "admin"


def require_admin(user: User) -> User:
    if not can_view_all_documents(user):
        raise PermissionDenied("Admin access required")
    return user


def authenticate(storage: Storage, username: str, password: str) -> User:
    for user in storage.get_users():
        if user.username == username and user.password == password:
            return user
    raise AuthFailure()


# ---------- Session ----------

def login(storage: Storage, username: str, password: str) -> User:
    try:
        user = authenticate(storage, username, password)
    except AuthFailure:
        logger.warning(f"Failed login for '{username}'")
        raise
    storage.save_session(user)
    logger.info(f"User '{user.username}' logged in")
    return user


def logout(storage: Storage) -> None:
    storage.clear_session()


def current_user(storage: Storage) -> Optional[User]:
    """Restore login state from the snapshot, using the user's live record."""
    snapshot = storage.get_session()
    if snapshot is None:
        return None
    for user in storage.get_users():
        if user.id == snapshot.id:
            return user
    # The account was deleted while logged in
    storage.clear_session()
    return None


# ---------- Documents ----------

def list_accessible_documents(storage: Storage, user: User) -> List[Document]:
    docs = storage.get_documents()
    if can_view_all_documents(user):
        return docs
    allowed = set(user.accessible_docs)
    return [d for d in docs if d.id in allowed]


def get_accessible_document(storage: Storage, user: User, doc_id: str) -> Document:
    for doc in list_accessible_documents(storage, user):
        if doc.id == doc_id:
            return doc
    raise NotFoundError("Document not found")


def update_instruction(storage: Storage, doc_id: str, instruction: str) -> Document:
    docs = storage.get_documents()
    for doc in docs:
        if doc.id == doc_id:
            doc.instruction = instruction
            storage.save_documents(docs)
            return doc
    raise NotFoundError("Document not found")


def delete_document(storage: Storage, doc_id: str) -> None:
    docs = storage.get_documents()
    remaining = [d for d in docs if d.id != doc_id]
    if len(remaining) == len(docs):
        raise NotFoundError("Document not found")
    storage.save_documents(remaining)

    users = storage.get_users()
    for user in users:
        user.accessible_docs = [d for d in user.accessible_docs if d != doc_id]
    storage.save_users(users)
    logger.info(f"Deleted document {doc_id}")


# ---------- Users ----------

def list_users(storage: Storage) -> List[User]:
    return [u for u in storage.get_users() if not can_view_all_documents(u)]


def create_user(storage: Storage, username: str, password: str) -> User:
    if not username or not password:
        raise ValidationError("Username and password are required")
    users = storage.get_users()
    if any(u.username == username for u in users):
        raise ValidationError("Username already exists")
    user = User(
        id=uuid4().hex,
        username=username,
        password=password,
        role="user",
        accessible_docs=[],
    )
    users.append(user)
    storage.save_users(users)
    logger.info(f"Created user '{username}'")
    return user


def delete_user(storage: Storage, user_id: str) -> None:
    users = storage.get_users()
    target = next((u for u in users if u.id == user_id), None)
    if target is None:
        raise NotFoundError("User not found")
    if can_view_all_documents(target):
        raise PermissionDenied("Admin accounts cannot be deleted")
    storage.save_users([u for u in users if u.id != user_id])
    logger.info(f"Deleted user '{target.username}'")


def grant_or_revoke(storage: Storage, user_id: str, doc_id: str) -> User:
    """Toggle ``doc_id`` in the user's accessible set."""
    if not any(d.id == doc_id for d in storage.get_documents()):
        raise NotFoundError("Document not found")
    users = storage.get_users()
    for user in users:
        if user.id == user_id:
            if doc_id in user.accessible_docs:
                user.accessible_docs = [d for d in user.accessible_docs if d != doc_id]
            else:
                user.accessible_docs = user.accessible_docs + [doc_id]
            storage.save_users(users)
            return user
    raise NotFoundError("User not found")
