from typing import Optional

from fastapi import APIRouter, File, Request, Response, UploadFile

from . import auth
from .chat import ChatSession
from .errors import AuthFailure, ValidationError
from .export import export_messages
from .ingest import ingest
from .models import Document, User
from .store import Storage

router = APIRouter(prefix="/api")


class AppContext:
    """Collaborators shared by the handlers of one application instance."""

    def __init__(self, storage: Storage, ai):
        self.storage = storage
        self.ai = ai
        self.chat: Optional[ChatSession] = None


def get_ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def require_user(ctx: AppContext) -> User:
    user = auth.current_user(ctx.storage)
    if user is None:
        ctx.chat = None
        raise AuthFailure("Not logged in")
    return user


def require_admin(ctx: AppContext) -> User:
    return auth.require_admin(require_user(ctx))


def get_chat(ctx: AppContext, user: User) -> ChatSession:
    """Chat session of the logged-in user, bound to their first document by default."""
    if ctx.chat is None or ctx.chat.owner_id != user.id:
        docs = auth.list_accessible_documents(ctx.storage, user)
        ctx.chat = ChatSession(ctx.ai, document=docs[0] if docs else None, owner_id=user.id)
    elif ctx.chat.document is not None:
        # Access may have been revoked since the document was bound
        allowed = {d.id for d in auth.list_accessible_documents(ctx.storage, user)}
        if ctx.chat.document.id not in allowed:
            ctx.chat.bind(None)
    return ctx.chat


def public_user(user: User) -> dict:
    return user.model_dump(exclude={"password"})


def doc_summary(doc: Document) -> dict:
    return doc.model_dump(exclude={"content"})


def chat_view(chat: ChatSession) -> dict:
    return {
        "document": doc_summary(chat.document) if chat.document else None,
        "mode": chat.mode,
        "state": chat.state.value,
        "messages": [m.model_dump() for m in chat.messages],
        "selected": [m.id for m in chat.selected_messages()],
    }


async def read_json(request: Request) -> dict:
    try:
        data = await request.json()
    except ValueError:
        raise ValidationError("Request body must be JSON")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


# ---------- Session ----------

@router.post("/login")
async def login(request: Request):
    ctx = get_ctx(request)
    data = await read_json(request)
    username = data.get("username") or ""
    password = data.get("password") or ""
    user = auth.login(ctx.storage, username, password)
    ctx.chat = None
    return {"success": True, "user": public_user(user)}


@router.post("/logout")
async def logout(request: Request):
    ctx = get_ctx(request)
    auth.logout(ctx.storage)
    ctx.chat = None
    return {"success": True}


@router.get("/session")
async def session(request: Request):
    user = require_user(get_ctx(request))
    return {"user": public_user(user)}


# ---------- Documents ----------

@router.get("/docs")
async def get_docs(request: Request):
    ctx = get_ctx(request)
    user = require_user(ctx)
    docs = auth.list_accessible_documents(ctx.storage, user)
    return {"documents": [doc_summary(d) for d in docs]}


@router.post("/upload")
async def upload(request: Request, file: UploadFile = File(...)):
    ctx = get_ctx(request)
    require_admin(ctx)
    if not file or not file.filename:
        raise ValidationError("File required")
    data = await file.read()
    doc = ingest(ctx.storage, data, file.content_type or "", file.filename)
    return {"success": True, "document": doc_summary(doc)}


@router.put("/docs/{doc_id}/instruction")
async def set_instruction(doc_id: str, request: Request):
    ctx = get_ctx(request)
    require_admin(ctx)
    data = await read_json(request)
    doc = auth.update_instruction(ctx.storage, doc_id, str(data.get("instruction") or ""))
    if ctx.chat and ctx.chat.document and ctx.chat.document.id == doc_id:
        ctx.chat.document = doc
    return {"success": True, "document": doc_summary(doc)}


@router.delete("/docs/{doc_id}")
async def delete_doc(doc_id: str, request: Request):
    ctx = get_ctx(request)
    require_admin(ctx)
    auth.delete_document(ctx.storage, doc_id)
    if ctx.chat and ctx.chat.document and ctx.chat.document.id == doc_id:
        ctx.chat = None
    return {"success": True}


# ---------- Users ----------

@router.get("/users")
async def get_users(request: Request):
    ctx = get_ctx(request)
    require_admin(ctx)
    return {"users": [public_user(u) for u in auth.list_users(ctx.storage)]}


@router.post("/users")
async def add_user(request: Request):
    ctx = get_ctx(request)
    require_admin(ctx)
    data = await read_json(request)
    user = auth.create_user(
        ctx.storage,
        (data.get("username") or "").strip(),
        data.get("password") or "",
    )
    return {"success": True, "user": public_user(user)}


@router.delete("/users/{user_id}")
async def remove_user(user_id: str, request: Request):
    ctx = get_ctx(request)
    require_admin(ctx)
    auth.delete_user(ctx.storage, user_id)
    return {"success": True}


@router.post("/users/{user_id}/docs/{doc_id}")
async def toggle_access(user_id: str, doc_id: str, request: Request):
    ctx = get_ctx(request)
    require_admin(ctx)
    user = auth.grant_or_revoke(ctx.storage, user_id, doc_id)
    return {"success": True, "user": public_user(user)}


# ---------- Chat ----------

@router.get("/chat")
async def chat_state(request: Request):
    ctx = get_ctx(request)
    chat = get_chat(ctx, require_user(ctx))
    return chat_view(chat)


@router.post("/chat/document")
async def bind_document(request: Request):
    ctx = get_ctx(request)
    user = require_user(ctx)
    data = await read_json(request)
    doc = auth.get_accessible_document(ctx.storage, user, str(data.get("doc_id") or ""))
    chat = get_chat(ctx, user)
    chat.bind(doc)
    return chat_view(chat)


@router.post("/chat/mode")
async def set_mode(request: Request):
    ctx = get_ctx(request)
    chat = get_chat(ctx, require_user(ctx))
    data = await read_json(request)
    chat.set_mode(str(data.get("mode") or ""))
    return chat_view(chat)


@router.post("/chat/send")
async def send(request: Request):
    ctx = get_ctx(request)
    chat = get_chat(ctx, require_user(ctx))
    data = await read_json(request)
    if data.get("mode"):
        chat.set_mode(str(data["mode"]))
    reply = await chat.submit(str(data.get("prompt") or ""))
    return {
        "accepted": reply is not None,
        "reply": reply.model_dump() if reply else None,
        "messages": [m.model_dump() for m in chat.messages],
    }


@router.post("/chat/selection/delete")
async def delete_selected(request: Request):
    ctx = get_ctx(request)
    chat = get_chat(ctx, require_user(ctx))
    removed = chat.delete_selected()
    return {"removed": removed, **chat_view(chat)}


@router.post("/chat/selection/{message_id}")
async def toggle_selection(message_id: str, request: Request):
    ctx = get_ctx(request)
    chat = get_chat(ctx, require_user(ctx))
    chat.toggle_selection(message_id)
    return chat_view(chat)


@router.delete("/chat/selection")
async def cancel_selection(request: Request):
    ctx = get_ctx(request)
    chat = get_chat(ctx, require_user(ctx))
    chat.cancel_selection()
    return chat_view(chat)


@router.get("/chat/export")
async def export_chat(request: Request, format: str = "pdf"):
    ctx = get_ctx(request)
    chat = get_chat(ctx, require_user(ctx))
    result = export_messages(chat.messages, chat.selected, format)
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
