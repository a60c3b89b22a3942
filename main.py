import inspect
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from routes.image_route import router as image_router
from routes.realtime_ws import router as realtime_router
from routes.session_route import router as session_router
from services.openai.model_client import OpenAIModelClient, RemoteModelClient
from services.realtime.session_store import SessionStore

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


async def _close_openai_client(client) -> None:
    """Close the OpenAI client if it exposes a close/aclose method."""
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception:
        # Ignore shutdown errors to avoid masking more important issues.
        LOGGER.debug("Ignoring error while closing the OpenAI client", exc_info=True)


def create_app(model_client: Optional[RemoteModelClient] = None) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Args:
        model_client: Optional remote model client. When omitted, an OpenAI
            backed client is created at startup (requires OPENAI_API_KEY).
    """
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan manager to initialize:
          - the remote model client (AsyncOpenAI unless one was injected)
          - the in-memory session store
        and attach them to `app.state`.
        """
        openai_client = None
        client = model_client
        if client is None:
            if not os.getenv("OPENAI_API_KEY"):
                raise RuntimeError("OPENAI_API_KEY environment variable is not set")
            try:
                openai_client = AsyncOpenAI()
            except Exception as exc:
                raise RuntimeError("Failed to initialize OpenAI Async client") from exc
            client = OpenAIModelClient(openai_client)

        app.state.openai_client = openai_client
        app.state.model_client = client
        app.state.session_store = SessionStore(client)

        try:
            yield
        finally:
            await app.state.session_store.drain()
            if openai_client is not None:
                await _close_openai_client(openai_client)

    app = FastAPI(title="Image Prompt Studio", lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports model client availability and session count.
        """
        store = getattr(request.app.state, "session_store", None)
        return {
            "ok": True,
            "model_available": getattr(request.app.state, "model_client", None) is not None,
            "sessions": len(store) if store is not None else 0,
        }

    # Register application routers
    app.include_router(session_router)
    app.include_router(image_router)
    app.include_router(realtime_router)

    return app


app = create_app()
