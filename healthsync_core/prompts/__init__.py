"""系统提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取 system prompt 文本，
用于构造 ChatMessage(role="system")。
"""

from functools import lru_cache
from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=None)
def load_system_prompt(locale: str = "en") -> str:
    """加载健康助手的系统提示词文本（去除末尾空行）。"""

    fname = PROMPTS_DIR / locale / "health_assistant_system.md"
    return fname.read_text(encoding="utf-8").strip()
