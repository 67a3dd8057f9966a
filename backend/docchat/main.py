from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .db import make_engine
from .errors import DocChatError
from .gemini import GeminiClient
from .routes import AppContext, router
from .store import SqlKeyValueStore, Storage


async def handle_docchat_error(request: Request, exc: DocChatError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(storage: Optional[Storage] = None, ai=None) -> FastAPI:
    if storage is None:
        storage = Storage(SqlKeyValueStore(make_engine()))
    if ai is None:
        ai = GeminiClient()

    # Seed the admin account
    storage.init()

    app = FastAPI(title="DocChat Pro")
    app.state.ctx = AppContext(storage, ai)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DocChatError, handle_docchat_error)
    app.include_router(router)
    return app


app = create_app()
