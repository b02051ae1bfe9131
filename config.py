"""
Configuration settings for the LINE FAQ bridge bot.

Loads environment variables and provides centralized config access.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file (if it exists)
load_dotenv()


def get_env(key: str, default: str = None) -> str:
    """Get environment variable, treating empty strings as unset."""
    value = os.getenv(key)
    if value is not None and value.strip() != "":
        return value

    # Return default if nothing found
    return default if default is not None else ""


def get_list(key: str, default: list) -> list:
    """Comma-separated environment list, falling back to ``default``."""
    raw = get_env(key)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# Project paths
PROJECT_ROOT = Path(__file__).parent
FAQ_PATH = Path(get_env("FAQ_PATH", str(PROJECT_ROOT / "faq.json")))
CHAT_LOG_PATH = Path(get_env("CHAT_LOG_PATH", str(PROJECT_ROOT / "logs" / "chatlog.json")))

# Messaging platform (LINE) credentials
LINE_CHANNEL_ACCESS_TOKEN = get_env("LINE_CHANNEL_ACCESS_TOKEN")
LINE_CHANNEL_SECRET = get_env("LINE_CHANNEL_SECRET")
LINE_REPLY_URL = "https://api.line.me/v2/bot/message/reply"

# LLM / embeddings
OPENAI_API_KEY = get_env("OPENAI_API_KEY")
OPENAI_BASE_URL = get_env("OPENAI_BASE_URL")
OPENAI_MODEL = get_env("OPENAI_MODEL", "gpt-4o-mini")
EMBEDDING_MODEL = get_env("EMBEDDING_MODEL", "text-embedding-3-small")

# Deployment mode: "online" (embeddings + generation) or "offline" (lexical only)
BOT_MODE = get_env("BOT_MODE", "online").lower()
FAQ_ANSWER_MODE = get_env("FAQ_ANSWER_MODE", "generate").lower()

# Human handoff
HANDOFF_WEBHOOK_URL = get_env("HANDOFF_WEBHOOK_URL")
INTENT_RULES_PATH = get_env("INTENT_RULES_PATH")  # optional JSON list of {pattern|keywords, action}
HANDOFF_KEYWORDS = get_list(
    "HANDOFF_KEYWORDS",
    ["人工客服", "真人客服", "真人", "請打給我", "業務聯絡", "電話", "聯絡我", "找人員"],
)

# Server
PORT = int(get_env("PORT", "3000"))
LOG_LEVEL = get_env("LOG_LEVEL", "INFO").upper()
MAX_CONCURRENT_EVENTS = int(get_env("MAX_CONCURRENT_EVENTS", "16"))

# Retrieval Configuration
FAQ_TOP_K = 3
LEXICAL_THRESHOLD = 0.08
SEMANTIC_THRESHOLD = 0.2
KEYWORD_BONUS = 0.02
DOMAIN_KEYWORDS = get_list(
    "DOMAIN_KEYWORDS",
    ["報價", "授權", "價格", "方案", "試用", "安裝", "支援", "續約", "發票",
     "資安", "防毒", "帳號", "密碼", "macos", "windows", "linux"],
)


class MemoryLimits:
    """Per-user conversation memory limits."""
    MAX_TURNS = 10
    CONTEXT_TURNS = 5


class TextLimits:
    """Limits for inbound and outbound message text."""
    MAX_INPUT_CHARS = 2000
    MAX_REPLY_CHARS = 4900


class Messages:
    """Fixed user-facing texts."""
    HANDOFF_ACK = "已為您安排人工客服協助，稍後將有同仁與您聯繫。若方便，請提供公司/姓名/電話。"
    BUSY_APOLOGY = "抱歉，系統忙碌中，我們稍後再回覆您。"
    EMPTY_COMPLETION = "抱歉，我現在沒有足夠資訊回答。"
    NO_HIT_GUIDANCE = (
        "目前找不到相關的答案。您可以試著輸入關鍵字，例如：「報價流程」、「授權方式」、「支援系統」，"
        "或輸入「真人客服」由專人為您服務。"
    )
    SYSTEM_PROMPT = "你是專業且友善的資安客服助理，回答要精準、條列化、可操作，必要時給下一步指引。"
    FAQ_CONTEXT_HEADER = "以下為公司 FAQ 參考內容，優先使用其中事實："
    OFFLINE_ANSWER_HEADER = "【參考回答】"
    OFFLINE_FURTHER_READING = "【延伸閱讀】"


# Validation: check that credentials required by the selected mode are present
def validate_config():
    """Validate that required configuration is present."""
    errors = []

    if not LINE_CHANNEL_ACCESS_TOKEN or not LINE_CHANNEL_SECRET:
        errors.append(
            "LINE credentials missing! Set LINE_CHANNEL_ACCESS_TOKEN and LINE_CHANNEL_SECRET"
        )

    if BOT_MODE not in ("online", "offline"):
        errors.append(f"Unknown BOT_MODE '{BOT_MODE}' (expected 'online' or 'offline')")

    if FAQ_ANSWER_MODE not in ("generate", "direct"):
        errors.append(f"Unknown FAQ_ANSWER_MODE '{FAQ_ANSWER_MODE}' (expected 'generate' or 'direct')")

    if BOT_MODE == "online" and not OPENAI_API_KEY:
        errors.append("Online mode requires OPENAI_API_KEY for completions and embeddings")

    return errors


# Print configuration status (for debugging)
if __name__ == "__main__":
    print("🔧 Configuration Status:")
    print(f"  Project Root: {PROJECT_ROOT}")
    print(f"  FAQ Catalog: {FAQ_PATH}")
    print(f"  Chat Log: {CHAT_LOG_PATH}")
    print(f"  Mode: {BOT_MODE} (faq answers: {FAQ_ANSWER_MODE})")
    print(f"\n🔑 Credentials Configured:")
    print(f"  LINE token: {'✅' if LINE_CHANNEL_ACCESS_TOKEN else '❌'}")
    print(f"  LINE secret: {'✅' if LINE_CHANNEL_SECRET else '❌'}")
    print(f"  OpenAI: {'✅' if OPENAI_API_KEY else '❌'}")
    print(f"  Handoff webhook: {'✅' if HANDOFF_WEBHOOK_URL else '❌'}")

    errors = validate_config()
    if errors:
        print(f"\n⚠️  Configuration Errors:")
        for error in errors:
            print(f"  - {error}")
    else:
        print(f"\n✅ Configuration valid!")
