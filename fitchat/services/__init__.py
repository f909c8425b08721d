"""
SERVICES PACKAGE
=================

Business logic lives here. The API layer (fitchat.main) calls these services;
they don't handle HTTP routing, only chat flow, AI calls, and stored state.

MODULES:
    chat_service        - ChatSession per surface + ChatService owning both
    conversation        - append-only message list of one surface
    quota               - usage cap (20 billable calls)
    assembler           - builds upstream message lists
    completion_client   - HTTP client of the OpenRouter proxy
    formatter           - plain-text cleanup of model replies
    storage             - key-value store (in memory / JSON file)
    openrouter_proxy    - server side of POST /api/openrouter
"""
