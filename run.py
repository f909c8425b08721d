"""
RUN SCRIPT - Start the FitChat server
=====================================

PURPOSE:
  Single entry point to start the backend (proxy + chat surfaces).

WHAT IT DOES:
  - Runs fitchat.main:app with uvicorn on host 0.0.0.0 and port 8000.
  - reload=True restarts the server when Python files change (handy for development).

USAGE:
  python run.py

  API docs: http://localhost:8000/docs

NOTE:
  Before running, set OPENROUTER_API_KEY in .env. Without it every call to
  /api/openrouter fails with a configuration error.
"""

import uvicorn

# ------------------------------------------------------------------------------
# ENTRY POINT
# ------------------------------------------------------------------------------
if __name__ == "__main__":
    uvicorn.run(
        "fitchat.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
