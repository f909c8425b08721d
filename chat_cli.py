"""
FITCHAT CHAT CLIENT - Terminal interface for the chat surfaces
==============================================================

PURPOSE:
Command-line client for the FitChat API. Talks to one chat surface at a time
("calendar" or "global"), lets you switch chat mode and language, and can send
a meal photo from disk for calorie analysis.

USAGE:
    python chat_cli.py

    Make sure the server is running first: python run.py

COMMANDS:
    1 / 2 / 3          - Switch mode: advice / menu / calories
    /photo <path>      - Send a meal photo for calorie analysis
    /lang en|vi        - Switch language
    /surface <name>    - Switch surface: calendar or global
    /history           - View the current surface's history
    /logout            - End the session on the server
    /quit or /exit     - Exit
"""

import os

import requests

from fitchat.errors import MediaAccessError
from fitchat.i18n import mode_labels, t
from fitchat.utils.images import open_photo_source


# -----------------------------------------------------------------------------
# CONFIGURATION
# -----------------------------------------------------------------------------
BASE_URL = os.getenv("FITCHAT_BASE_URL", "http://localhost:8000")
MODES = {"1": "advice", "2": "menu", "3": "calories"}

SURFACE = "global"
MODE = "advice"
LANGUAGE = "en"


# -----------------------------------------------------------------------------
# UI HELPERS
# -----------------------------------------------------------------------------

def print_header():
    labels = mode_labels(LANGUAGE)
    print("\n" + "=" * 60)
    print("FitChat - Nutrition Assistant")
    print("=" * 60)
    print("\nModes:")
    for key, mode in MODES.items():
        print(f"  {key} = {labels[mode]}")
    print("\nCommands:")
    print("  /photo <path>   - Analyze a meal photo")
    print("  /lang en|vi     - Switch language")
    print("  /surface <name> - calendar or global")
    print("  /history        - See chat history")
    print("  /logout         - End the session")
    print("  /quit           - Exit")
    print("=" * 60 + "\n")


def print_messages(messages):
    for msg in messages:
        who = "You" if msg.get("role") == "user" else "FitChat"
        print(f"{who}: {msg.get('content', '')}\n")


def _error_text(response) -> str:
    try:
        detail = response.json().get("detail")
        if isinstance(detail, str):
            return detail
    except ValueError:
        pass
    return f"Error: {response.status_code} - {response.text}"


# -----------------------------------------------------------------------------
# API CALLS
# -----------------------------------------------------------------------------

def post_turn(path, body):
    """POST to a chat endpoint and print what the surface appended."""
    try:
        response = requests.post(f"{BASE_URL}{path}", json=body)
    except requests.exceptions.ConnectionError:
        print("Cannot connect to backend. Start it with: python run.py")
        return
    if response.status_code != 200:
        print(_error_text(response))
        return
    data = response.json()
    print_messages(data.get("messages", []))
    print(t("uses_left", LANGUAGE, count=data.get("remaining_uses", 0)))


def send_message(message):
    post_turn(f"/chat/{SURFACE}", {"message": message, "mode": MODE, "language": LANGUAGE})


def send_photo(path):
    try:
        with open_photo_source(path) as source:
            image = source.capture()
    except MediaAccessError as e:
        print(f"{t('camera_unavailable', LANGUAGE)}: {e.message}")
        return
    post_turn(f"/chat/{SURFACE}/photo", {"image": image, "language": LANGUAGE})


def show_history():
    try:
        response = requests.get(f"{BASE_URL}/chat/{SURFACE}/history", params={"language": LANGUAGE}, timeout=10)
    except requests.exceptions.ConnectionError:
        print("Cannot connect to backend. Start it with: python run.py")
        return
    if response.status_code != 200:
        print(_error_text(response))
        return
    data = response.json()
    print(f"\nChat History - {SURFACE} ({len(data['messages'])} messages)")
    print("-" * 60)
    print_messages(data["messages"])
    if data.get("summary"):
        print(f"Summary: {data['summary']}")
    print(t("uses_left", LANGUAGE, count=data.get("remaining_uses", 0)))
    print("-" * 60)


def logout():
    try:
        response = requests.post(f"{BASE_URL}/logout", timeout=10)
        print(response.json())
    except requests.exceptions.ConnectionError:
        print("Cannot connect to backend. Start it with: python run.py")


# -----------------------------------------------------------------------------
# MAIN LOOP
# -----------------------------------------------------------------------------

def main():
    global SURFACE, MODE, LANGUAGE

    print_header()
    print(t("greeting", LANGUAGE) + "\n")

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        if not user_input:
            continue
        if user_input in MODES:
            MODE = MODES[user_input]
            print(f"Mode: {mode_labels(LANGUAGE)[MODE]}\n")
        elif user_input.startswith("/photo"):
            path = user_input[len("/photo"):].strip()
            if not path:
                print("Usage: /photo <path>")
            else:
                send_photo(path)
        elif user_input.startswith("/lang"):
            choice = user_input[len("/lang"):].strip()
            if choice in ("en", "vi"):
                LANGUAGE = choice
                print(f"Language: {LANGUAGE}\n")
            else:
                print("Usage: /lang en|vi")
        elif user_input.startswith("/surface"):
            choice = user_input[len("/surface"):].strip()
            if choice in ("calendar", "global"):
                SURFACE = choice
                print(f"Surface: {SURFACE}\n")
            else:
                print("Usage: /surface calendar|global")
        elif user_input == "/history":
            show_history()
        elif user_input == "/logout":
            logout()
        elif user_input in ("/quit", "/exit"):
            print("Goodbye!")
            break
        elif user_input.startswith("/"):
            print(f"Unknown command: {user_input}")
        else:
            send_message(user_input)


if __name__ == "__main__":
    main()
