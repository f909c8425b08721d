"""
CONFIGURATION MODULE
====================

PURPOSE:
  Central place for all FitChat settings: the upstream API key, proxy URL,
  model names, quota and summarization knobs, and the bilingual system prompts.

WHAT THIS FILE DOES:
  - Loads environment variables from .env (so the OpenRouter key stays out of code).
  - Defines the chat state directory (the server's stand-in for browser storage)
    and creates it if it doesn't exist.
  - Exposes TEXT_MODEL / VISION_MODEL and the proxy URL used by the completion client.
  - Holds the persona prompt, the per-mode instructions and the summary templates
    in English and Vietnamese.

USAGE:
  Import what you need: `from config import USAGE_LIMIT, get_mode_instruction`
  All services import from here so behaviour is consistent.
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv


# -----------------------------------------------------------------------------
# LOGGING
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# ENVIRONMENT
# -----------------------------------------------------------------------------
# Load environment variables from .env file (if it exists).
load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean env var ("1", "true", "yes", "on" are true)."""
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _env_float(name: str):
    """Read an optional float env var; unset or invalid means None."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r (expected a number)", name, raw)
        return None


# -----------------------------------------------------------------------------
# BASE PATH
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).parent

# ============================================================================
# CHAT STATE STORAGE
# ============================================================================
# Usage counters and rolling summaries are kept as plain strings in one JSON
# file per server, keyed the same way the browser app keyed localStorage:
# calendar_ai_usage, calendar_ai_summary, global_ai_usage, global_ai_summary.

CHAT_STATE_DIR = Path(os.getenv("CHAT_STATE_DIR", str(BASE_DIR / "database" / "chat_state")))
CHAT_STATE_FILE = CHAT_STATE_DIR / "state.json"

# parents=True creates parent folders; exist_ok=True avoids error if already present.
CHAT_STATE_DIR.mkdir(parents=True, exist_ok=True)

# ============================================================================
# OPENROUTER CONFIGURATION
# ============================================================================
# The key lives only on the server. The proxy reads it on every request so a
# missing key is reported per attempt instead of being cached at startup.

OPENROUTER_API_URL = os.getenv("OPENROUTER_API_URL", "https://openrouter.ai/api/v1/chat/completions")
APP_TITLE = os.getenv("APP_TITLE", "Bilingual Fitness Web App")


def get_openrouter_api_key() -> str:
    """Return the upstream credential, or "" if it is not configured."""
    return os.getenv("OPENROUTER_API_KEY", "").strip()


# Where the completion client sends requests. Defaults to this server's own proxy route.
PROXY_URL = os.getenv("FITCHAT_PROXY_URL", "http://localhost:8000/api/openrouter")

TEXT_MODEL = os.getenv("TEXT_MODEL", "openai/gpt-oss-120b")
# Must accept multi-part content (text + image_url).
VISION_MODEL = os.getenv("VISION_MODEL", "openai/gpt-4o-mini")

# Seconds; unset means the client waits for the upstream answer indefinitely.
COMPLETION_TIMEOUT = _env_float("COMPLETION_TIMEOUT")

# ============================================================================
# QUOTA AND SUMMARIZATION
# ============================================================================
# USAGE_LIMIT: billable AI calls allowed per surface (summaries included).
# SUMMARY_TRIGGER_MESSAGES: prior messages needed before a send refreshes the summary.

USAGE_LIMIT = 20
SUMMARY_TRIGGER_MESSAGES = 8

# Maximum length (characters) for a single user message.
MAX_MESSAGE_LENGTH = 4_000

# Maximum length (characters) of a meal photo data URI (about 7.5 MB of image data).
MAX_PHOTO_DATA_URI_LENGTH = 10_000_000

# Whether POST /logout wipes the persisted usage counters and summaries.
# The browser app never did, so the default keeps them.
CLEAR_CHAT_STATE_ON_LOGOUT = _env_flag("CLEAR_CHAT_STATE_ON_LOGOUT", False)

SUPPORTED_LANGUAGES = ("en", "vi")

# ============================================================================
# PERSONA PROMPT
# ============================================================================
# Sent as the first system message of every completion when a language is given.

NUTRITION_SYSTEM_PROMPTS = {
    "en": " ".join([
        "You are a bilingual nutrition assistant.",
        "ALWAYS respond in English, regardless of the user input language.",
        "Use plain text only, do not use Markdown, bullet points, code fences, or special formatting.",
        "Structure your response as short paragraphs separated by newline characters for readability.",
        "Provide clear, safe, practical diet guidance aligned to user goals, "
        "with concise tips and optional meal suggestions.",
    ]),
    "vi": " ".join([
        "Bạn là trợ lý dinh dưỡng song ngữ.",
        "LUÔN trả lời bằng tiếng Việt, bất kể người dùng nhập bằng ngôn ngữ nào.",
        "Chỉ dùng văn bản thuần, không dùng Markdown, gạch đầu dòng, code fence hoặc định dạng đặc biệt.",
        "Sắp xếp câu trả lời thành các đoạn ngắn, phân tách bằng ký tự xuống dòng để dễ đọc.",
        "Hãy đưa ra hướng dẫn ăn uống an toàn, thực tế, phù hợp mục tiêu của người dùng, "
        "ưu tiên mẹo ngắn gọn và gợi ý bữa ăn.",
    ]),
}

# ============================================================================
# MODE INSTRUCTIONS
# ============================================================================
# One system message per request, chosen by the chat mode the user selected.

MODE_INSTRUCTIONS = {
    "en": {
        "advice": " ".join([
            "Mode: Nutrition and fitness advice.",
            "Give practical, safe guidance tailored to the user's context and goals.",
            "Prefer step-by-step tips, suggest small habit changes, and optional 7-day action plan.",
        ]),
        "menu": " ".join([
            "Mode: Menu building.",
            "Create a simple 7-day menu with 3 meals + 1 snack per day.",
            "Each meal: name, approximate calories and macros.",
            "End with a concise shopping list summary grouped by categories.",
        ]),
        "calories": " ".join([
            "Mode: Calorie analysis from meal image.",
            "Identify foods, estimate portion sizes, calories and macros per item and total.",
            "Provide confidence level and mention assumptions; suggest healthier swaps if relevant.",
        ]),
    },
    "vi": {
        "advice": " ".join([
            "Chế độ: Lời khuyên dinh dưỡng và thể chất.",
            "Đưa ra hướng dẫn an toàn, thực tế, phù hợp bối cảnh và mục tiêu của người dùng.",
            "Ưu tiên mẹo theo từng bước, gợi ý thay đổi thói quen nhỏ và kế hoạch hành động 7 ngày (tùy chọn).",
        ]),
        "menu": " ".join([
            "Chế độ: Xây dựng thực đơn.",
            "Tạo thực đơn 7 ngày đơn giản với 3 bữa chính + 1 bữa phụ mỗi ngày.",
            "Mỗi bữa: tên, calories và macros ước lượng.",
            "Kết thúc bằng danh sách mua sắm ngắn gọn, nhóm theo danh mục.",
        ]),
        "calories": " ".join([
            "Chế độ: Phân tích calories từ ảnh món ăn.",
            "Nhận diện món ăn, ước lượng khẩu phần, calories và macros cho từng món và tổng.",
            "Đưa mức độ tự tin, nêu giả định và gợi ý thay thế lành mạnh nếu phù hợp.",
        ]),
    },
}

# ============================================================================
# SUMMARY TEMPLATES
# ============================================================================

SUMMARY_PREFIX_TEMPLATES = {
    "en": "Conversation summary: {summary}",
    "vi": "Tóm tắt hội thoại: {summary}",
}

SUMMARIZE_INSTRUCTIONS = {
    "en": "Summarize the following conversation in one short paragraph.",
    "vi": "Tóm tắt cuộc hội thoại sau thành một đoạn ngắn.",
}


def _plain(value) -> str:
    """Enum members carry their string in .value; plain strings pass through."""
    return str(getattr(value, "value", value))


def normalize_language(language) -> str:
    """Anything other than "vi" is treated as English, like the browser app did."""
    return "vi" if _plain(language) == "vi" else "en"


def get_system_prompt(language) -> str:
    return NUTRITION_SYSTEM_PROMPTS[normalize_language(language)]


def get_mode_instruction(mode, language) -> str:
    """Return the instruction paragraph for a chat mode, or "" for an unknown mode."""
    return MODE_INSTRUCTIONS[normalize_language(language)].get(_plain(mode), "")
