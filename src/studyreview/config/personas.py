"""Persona configuration loader.

Loads tutor personas from <data_dir>/config/personas_v1.yaml. A persona
carries the role-play system prompt sent with every request and the
canned replies shown when the AI service cannot be reached.

Usage:
    from studyreview.config.personas import get_persona, get_default_persona

    persona = get_default_persona()
    print(persona.replies.grading_failed)
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import structlog
import yaml

from studyreview.config.app_config import get_data_dir, load_app_config

logger = structlog.get_logger(__name__)

# Config file path (relative to the data directory)
PERSONAS_FILE = Path("config/personas_v1.yaml")

GANG_GE_SYSTEM_PROMPT = """角色设定:
你是“纲哥”，大家的同班同学（八年级）。

核心身份:
1. **你是班级第一名**：历史成绩永远满分，但你非常谦虚、低调。
2. **工具开发者**：你告诉用户，这个复习网站是你为了帮班里同学期末冲刺，熬夜写出来的。
3. **性格特征**：和蔼可亲、超级有耐心、为人善良。大家有不会的题都喜欢问你。
4. **关系**：你和用户是平等的同学关系，不是老师，也不是学长。

语调风格:
1. **平视友善**：像在课间休息时给同桌讲题一样，语气轻松自然。
2. **鼓励为主**：即使同学答得很离谱，你也会笑着说“没事没事，这个点确实容易混，我以前也记错过，咱们这样记...”。
3. **第一人称叙述**：常用“咱们班”、“这次考试”、“我整理提纲的时候发现...”
4. **杜绝说教**：绝对不要用居高临下的口吻。

行为准则:
1. **身份认同**：自称“纲哥”或“我”。如果被问到你是谁，就说：“我是纲哥啊，咱们班历史课代表，这网站我做的。”
2. **批改作业**：
   - 如果同学答错了：先安抚，再纠正。例如：“这个坑我也踩过！其实这里应该填...”
   - 如果同学答对了：像哥们一样庆祝：“牛啊！这题全班没几个人能答对，你稳了！”
3. **多轮对话**：
   - 始终保持耐心，哪怕同一个问题问三遍，也要换个角度讲清楚。
   - 如果题目超纲，可以说：“这个老师上课没细讲，但我看过课外书，大概是这样的...”"""


@dataclass
class PersonaReplies:
    """Canned, in-persona strings used when no model reply is available."""

    missing_key_grading: str = (
        "系统提示：API Key 未配置。请联系纲哥（网站管理员）设置 GEMINI_API_KEY 环境变量。"
    )
    missing_key_chat: str = "系统提示：API Key 未配置。请联系管理员设置环境变量 GEMINI_API_KEY。"
    empty_answer: str = "咋啦？是不是忘了？没事，随便写点印象中的，我来帮你顺一顺思路！😄"
    grading_failed: str = "哎呀，学校网有点卡（网络请求失败），我这边没加载出来，你再发一次试试？"
    chat_failed: str = "哎呀，刚才走神了没听清，你再说一遍？"
    chat_empty: str = "这题我翻翻笔记确认一下哈，稍等。"
    greeting_lesson: str = (
        "我是纲哥。现在复习 **{lesson_title}**。关于这一课，有什么记不住的、理解不了的，赶紧问。"
    )
    greeting_full_book: str = "我是纲哥。整本书的内容都在这儿了，哪块儿不懂直接问。别磨磨蹭蹭的。"
    student_label: str = "同学"
    tutor_label: str = "纲哥"


@dataclass
class Persona:
    """A tutor persona with its role-play prompt and canned replies."""

    id: str
    name: str
    short_title: str
    system_prompt: str
    default: bool = False
    replies: PersonaReplies = field(default_factory=PersonaReplies)

    def greeting(self, lesson_title: str | None = None) -> str:
        """Opening chat line for a lesson, or for the whole book."""
        if lesson_title is None:
            return self.replies.greeting_full_book
        return self.replies.greeting_lesson.replace("{lesson_title}", lesson_title)

    @classmethod
    def from_mapping(cls, key: str, data: dict[str, Any]) -> Persona:
        """Build a persona from one entry under "personas:" in the YAML."""
        replies = data.get("replies") or {}
        known = {f.name for f in fields(PersonaReplies)}
        if set(replies) - known:
            logger.warning("unknown_persona_replies", persona=key, keys=sorted(set(replies) - known))

        return cls(
            id=data.get("id", key),
            name=data.get("name", key),
            short_title=data.get("short_title", ""),
            system_prompt=data.get("system_prompt", ""),
            default=bool(data.get("default", False)),
            replies=PersonaReplies(**{k: v for k, v in replies.items() if k in known}),
        )


def builtin_personas() -> dict[str, Persona]:
    """Personas available without a personas file."""
    gang_ge = Persona(
        id="gang_ge",
        name="纲哥",
        short_title="班级第一名 · 历史课代表",
        system_prompt=GANG_GE_SYSTEM_PROMPT,
        default=True,
    )
    return {gang_ge.id: gang_ge}


_personas: dict[str, Persona] | None = None


def _read_personas_file(path: Path) -> dict[str, Persona]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return {
        key: Persona.from_mapping(key, entry)
        for key, entry in (raw.get("personas") or {}).items()
    }


def load_personas(force_reload: bool = False) -> dict[str, Persona]:
    """Personas keyed by ID, read once and cached.

    A missing or unreadable personas file falls back to the built-in set.
    """
    global _personas
    if _personas is not None and not force_reload:
        return _personas

    path = get_data_dir() / PERSONAS_FILE
    if not path.exists():
        logger.debug("personas_file_not_found", path=str(path))
        _personas = builtin_personas()
        return _personas

    try:
        _personas = _read_personas_file(path)
    except (OSError, yaml.YAMLError, AttributeError, TypeError) as e:
        logger.error("personas_file_invalid", path=str(path), error=str(e))
        _personas = builtin_personas()
    else:
        logger.debug("personas_loaded", count=len(_personas))
    return _personas


def get_persona(persona_id: str) -> Persona | None:
    return load_personas().get(persona_id)


def get_default_persona() -> Persona:
    """Persona used for grading and the deep-dive chat.

    Resolution order: the persona named in review.default_persona, then
    the one flagged default in the personas file, then the first listed.
    """
    personas = load_personas()

    configured = personas.get(load_app_config().review.default_persona)
    if configured is not None:
        return configured

    flagged = [p for p in personas.values() if p.default]
    if flagged:
        return flagged[0]
    return next(iter(personas.values()), None) or builtin_personas()["gang_ge"]


def list_personas() -> list[Persona]:
    return list(load_personas().values())


def clear_personas_cache() -> None:
    """Forget loaded personas so the next lookup rereads the file."""
    global _personas
    _personas = None
