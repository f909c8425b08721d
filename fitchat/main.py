"""
FITCHAT MAIN API
================

This module defines the FastAPI application and all HTTP endpoints: the
OpenRouter proxy and the two chat surfaces that use it.

ENDPOINTS:
  GET  /                         - Returns API name and list of endpoints.
  GET  /health                   - Returns whether the chat service is ready.
  GET  /modes                    - Localized labels of the chat modes.
  POST /api/openrouter           - Proxy: adds the server-side key and forwards
                                   a chat-completion payload to OpenRouter.
  POST /chat/{surface}           - Send a text message (surface: calendar | global).
  POST /chat/{surface}/photo     - Send a meal photo (data: URI) for calorie analysis.
  GET  /chat/{surface}/history   - All messages of a surface plus quota and summary.
  POST /logout                   - Drop conversations; clears counters only if
                                   CLEAR_CHAT_STATE_ON_LOGOUT is set.

SURFACES:
  "calendar" (the meal-calendar tab chat) and "global" (the floating bubble) are
  independent: separate messages, separate usage counters, separate summaries.

STARTUP:
  The lifespan function creates the completion client (pointed at FITCHAT_PROXY_URL,
  this server's own /api/openrouter by default) and the chat service backed by
  database/chat_state/state.json.
"""


from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Body, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
import logging

from config import CHAT_STATE_FILE, PROXY_URL
from fitchat.errors import FitChatError, RemoteServiceError, SessionBusyError, ValidationError
from fitchat.i18n import mode_labels
from fitchat.models import (
    ChatHistoryResponse,
    ChatTurnResponse,
    Language,
    SendMessageRequest,
    SendPhotoRequest,
)
from fitchat.services.chat_service import ChatService, ChatSession
from fitchat.services.completion_client import CompletionClient
from fitchat.services.openrouter_proxy import forward_completion
from fitchat.services.storage import JsonFileStore
from fitchat.utils.images import normalize_data_uri


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("FitChat")


# -----------------------------------------------------------------------------
# GLOBAL SERVICE REFERENCES
# -----------------------------------------------------------------------------
# Set during startup (lifespan) and used by all chat route handlers.
chat_service: Optional[ChatService] = None


# -------------------------------------------------------------------------
# LIFESPAN (STARTUP / SHUTDOWN)
# -------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    STARTUP: build the completion client and the chat service.
    SHUTDOWN: nothing to flush; counters and summaries are written as they change.
    """
    global chat_service

    logger.info("=" * 60)
    logger.info("FitChat - Starting Up...")
    logger.info("=" * 60)

    try:
        client = CompletionClient(endpoint=PROXY_URL)
        chat_service = ChatService(JsonFileStore(CHAT_STATE_FILE), client)
        logger.info("Completion client -> %s", PROXY_URL)
        logger.info("Chat state file: %s", CHAT_STATE_FILE)
        logger.info("Logout clears chat state: %s", chat_service.clear_on_logout)
        logger.info("FitChat is online and ready!")
        logger.info("=" * 60)

        yield

        logger.info("Shutting down FitChat. Goodbye!")

    except Exception as e:
        logger.error(f"Fatal error during startup: {e}", exc_info=True)
        raise


# -------------------------------------------------------------------------
# FASTAPI APP AND CORS
# -------------------------------------------------------------------------
app = FastAPI(
    title="FitChat API",
    description="Bilingual nutrition and fitness assistant",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_session(surface: str, language=Language.EN) -> ChatSession:
    """Look up a chat surface; 503 before startup, 400 for an unknown surface."""
    if not chat_service:
        raise HTTPException(status_code=503, detail="Chat service not initialized")
    try:
        return chat_service.get_session(surface, language=language.value)
    except ValueError as e:
        logger.warning(f"Invalid surface: {e}")
        raise HTTPException(status_code=400, detail=str(e))


def _turn_response(surface: str, session: ChatSession, messages) -> ChatTurnResponse:
    return ChatTurnResponse(
        surface=surface,
        messages=messages,
        usage_count=session.usage_count,
        remaining_uses=session.remaining_uses,
    )


# =========================================================================
# API ENDPOINTS
# =========================================================================

@app.get("/")
async def root():
    """Return the API name and a short description of each endpoint (for discovery)."""
    return {
        "message": "FitChat API",
        "endpoints": {
            "/api/openrouter": "OpenRouter chat-completion proxy",
            "/chat/{surface}": "Send a message (surface: calendar | global)",
            "/chat/{surface}/photo": "Send a meal photo for calorie analysis",
            "/chat/{surface}/history": "Get chat history, usage and summary",
            "/modes": "Chat mode labels",
            "/logout": "End the session",
            "/health": "System health check"
        }
    }


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "chat_service": chat_service is not None
    }


@app.get("/modes")
async def modes(language: Language = Query(Language.EN)):
    """Labels for the mode selector, in the requested language."""
    return {"language": language.value, "modes": mode_labels(language)}


@app.post("/api/openrouter")
def openrouter_proxy(
    payload: Any = Body(default=None),
    origin: Optional[str] = Header(default=None),
):
    """
    Forward a chat-completion payload to OpenRouter with the server's key.

    REQUEST BODY:
    {"model": "openai/gpt-oss-120b", "messages": [{"role": "user", "content": "Hi"}]}

    ERRORS (all as {"error": "..."}):
      500 - OPENROUTER_API_KEY missing on the server
      400 - no messages list
      xxx - upstream status passed through with its raw body
    """
    try:
        return forward_completion(payload, origin)
    except RemoteServiceError as e:
        status = e.status_code or 502
        return JSONResponse(status_code=status, content={"error": e.body})
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": e.message})
    except FitChatError as e:
        # ConfigurationError and MalformedResponseError
        logger.error(f"Proxy error: {e.message}")
        return JSONResponse(status_code=500, content={"error": e.message})
    except Exception as e:
        logger.error(f"Unexpected proxy error: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e) or "Unknown error"})


@app.post("/chat/{surface}", response_model=ChatTurnResponse)
def chat(surface: str, request: SendMessageRequest):
    """
    Send a text message on one chat surface.

    REQUEST BODY:
    {"message": "Plan my meals for a week", "mode": "menu", "language": "en"}

    RESPONSE: the messages this send appended (user message, then the reply,
    the fallback or the limit notice) plus usage_count and remaining_uses.
    """
    session = _get_session(surface, request.language)
    try:
        messages = session.send_message(request.message, request.mode, request.language.value)
        return _turn_response(surface, session, messages)
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except Exception as e:
        logger.error(f"Error processing chat: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error processing chat: {str(e)}")


@app.post("/chat/{surface}/photo", response_model=ChatTurnResponse)
def chat_photo(surface: str, request: SendPhotoRequest):
    """
    Send a meal photo for calorie analysis. image must be a data: URI; it is
    checked and re-encoded as PNG before it is sent to the vision model. A
    photo that is not a usable image gets the localized photo fallback reply.
    """
    session = _get_session(surface, request.language)
    try:
        image = normalize_data_uri(request.image)
    except ValidationError as e:
        messages = session.reject_photo(e.message, request.language.value)
        return _turn_response(surface, session, messages)
    try:
        messages = session.send_photo(image, request.language.value)
        return _turn_response(surface, session, messages)
    except SessionBusyError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except Exception as e:
        logger.error(f"Error processing photo: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error processing photo: {str(e)}")


@app.get("/chat/{surface}/history", response_model=ChatHistoryResponse)
def get_chat_history(surface: str, language: Language = Query(Language.EN)):
    """
    Return every message of a surface in order, starting with the greeting,
    plus the usage counter, the uses left and the stored summary.
    """
    session = _get_session(surface, language)
    return ChatHistoryResponse(
        surface=surface,
        messages=session.messages,
        usage_count=session.usage_count,
        remaining_uses=session.remaining_uses,
        summary=session.summary,
    )


@app.post("/logout")
def logout():
    if not chat_service:
        raise HTTPException(status_code=503, detail="Chat service not initialized")
    cleared = chat_service.logout()
    return {"status": "logged_out", "chat_state_cleared": cleared}


# -------------------------------------------------------------------------
# STANDALONE RUN (python -m fitchat.main)
# -------------------------------------------------------------------------
def run():
    """Start the uvicorn server (same as run.py)."""
    uvicorn.run(
        "fitchat.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )

if __name__ == "__main__":
    run()
