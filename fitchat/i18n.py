"""Localized chat-surface strings (English and Vietnamese)."""

from config import USAGE_LIMIT, normalize_language


MESSAGES = {
    "greeting": {
        "en": "Hello! I can help you with meal suggestions and nutrition questions. What would you like to know?",
        "vi": "Xin chào! Tôi có thể giúp bạn về gợi ý bữa ăn và câu hỏi dinh dưỡng. Bạn muốn biết gì?",
    },
    "limit_reached": {
        "en": f"You have reached the limit of {USAGE_LIMIT} uses in this session.",
        "vi": f"Bạn đã dùng tối đa {USAGE_LIMIT} lần trong phiên này.",
    },
    "chat_fallback": {
        "en": "Sorry, I could not reach the nutrition assistant. Please try again later.",
        "vi": "Xin lỗi, không thể kết nối trợ lý dinh dưỡng. Vui lòng thử lại sau.",
    },
    "photo_fallback": {
        "en": "Sorry, I could not analyze the photo. Please try again later.",
        "vi": "Xin lỗi, không thể phân tích ảnh. Vui lòng thử lại sau.",
    },
    # Instruction text sent alongside the photo.
    "photo_request": {
        "en": "Please analyze the calories and macros in this meal photo.",
        "vi": "Hãy phân tích calories và macros trong ảnh bữa ăn này.",
    },
    # What the surface shows in place of the photo once analysis succeeds.
    "photo_sent": {
        "en": "Sent a meal photo for analysis.",
        "vi": "Đã gửi ảnh bữa ăn để phân tích.",
    },
    "camera_unavailable": {
        "en": "Could not access camera",
        "vi": "Không thể truy cập camera",
    },
    "uses_left": {
        "en": "Uses left: {count}",
        "vi": "Lượt còn lại: {count}",
    },
}

MODE_LABELS = {
    "en": {
        "advice": "Nutrition and fitness advice",
        "menu": "Menu building",
        "calories": "Calorie analysis",
    },
    "vi": {
        "advice": "Lời khuyên dinh dưỡng và thể chất",
        "menu": "Xây dựng thực đơn",
        "calories": "Phân tích calories",
    },
}


def t(key: str, language, **kwargs) -> str:
    """Look up a localized string; kwargs fill its placeholders."""
    text = MESSAGES[key][normalize_language(language)]
    return text.format(**kwargs) if kwargs else text


def mode_labels(language) -> dict:
    return dict(MODE_LABELS[normalize_language(language)])
