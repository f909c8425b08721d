"""
FITCHAT APPLICATION PACKAGE
===========================

Main Python package for the FitChat backend, the bilingual (English/Vietnamese)
nutrition assistant behind the fitness web app's chat surfaces:

  from fitchat.main import app
  from fitchat.services.chat_service import ChatService

FILE STRUCTURE:
  fitchat/
    __init__.py   - This file; marks 'fitchat' as a package.
    main.py       - FastAPI app and all HTTP endpoints (/api/openrouter, /chat/..., /health).
    models.py     - Pydantic models for wire messages, display messages and API bodies.
    errors.py     - Error types of the chat pipeline and the proxy.
    i18n.py       - Localized chat-surface strings.
    services/     - Chat sessions, quota, assembler, completion client, formatter, storage, proxy.
    utils/        - Helpers: meal photo capture and data URI encoding.
"""
