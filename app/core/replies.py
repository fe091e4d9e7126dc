from __future__ import annotations

import logging
import random
from typing import Final, Protocol

LOGGER = logging.getLogger(__name__)

CANNED_REPLIES: Final[tuple[str, ...]] = (
    "Estoy aquí contigo, {name} 💛",
    "Lo estás haciendo genial, {name}. Un pasito cada vez 🌱",
    "Respira hondo, {name}. Todo va a salir bien ✨",
    "Qué orgullo me das, {name} 🥰",
    "Si necesitas algo, aquí estoy. Siempre 💫",
    "Eres más fuerte de lo que crees, {name} 💪",
)

MAX_REPLY_TOKENS = 300
REPLY_TEMPERATURE = 0.8


class ChatModel(Protocol):
    async def chat(self, messages: list[dict[str, str]], *, max_tokens: int, temperature: float) -> str:
        ...


def build_system_prompt(bot_name: str, partner_name: str) -> str:
    return (
        f"Eres {bot_name}, un asistente cariñoso y breve que acompaña a {partner_name}. "
        "Respondes en español, con calidez y ánimo, en dos o tres frases como mucho. "
        "No das diagnósticos médicos ni consejos peligrosos. "
        "Si te piden recordar algo, sugiere usar /recordatorio con una fecha."
    )


class Replier:
    """Supportive replies from the LLM, falling back to canned phrases."""

    def __init__(
        self,
        *,
        llm_client: ChatModel | None,
        bot_name: str,
        partner_name: str,
        rng: random.Random | None = None,
    ) -> None:
        self._llm = llm_client
        self._bot_name = bot_name
        self._partner_name = partner_name
        self._rng = rng or random.Random()

    @property
    def ai_enabled(self) -> bool:
        return self._llm is not None

    def canned(self) -> str:
        return self._rng.choice(CANNED_REPLIES).format(name=self._partner_name)

    async def reply(self, text: str) -> str:
        prompt = (text or "").strip()
        if self._llm is None or not prompt:
            return self.canned()
        messages = [
            {"role": "system", "content": build_system_prompt(self._bot_name, self._partner_name)},
            {"role": "user", "content": prompt},
        ]
        try:
            content = await self._llm.chat(
                messages,
                max_tokens=MAX_REPLY_TOKENS,
                temperature=REPLY_TEMPERATURE,
            )
        except Exception:
            LOGGER.exception("AI reply failed; using canned reply")
            return self.canned()
        content = (content or "").strip()
        if not content:
            LOGGER.warning("AI reply was empty; using canned reply")
            return self.canned()
        return content
