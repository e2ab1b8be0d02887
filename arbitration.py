# arbitration.py
# Run every source at once, keep the most confident answer, else fall back in order.

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from config import settings
from retrieval import Candidate, SourceTag

logger = logging.getLogger(__name__)

FALLBACK_SOURCE = "fallback"

# Sequential fallback order, also the tie-break order
SOURCE_PRIORITY = [SourceTag.FAQ, SourceTag.KNOWLEDGE_ENTRY, SourceTag.ALERT]

NO_INFO_MESSAGE = {
    "en": "Sorry, I couldn't find information about that. Please contact your local health office.",
    "hi": "क्षमा करें, मुझे इसके बारे में जानकारी नहीं मिली। कृपया अपने स्थानीय स्वास्थ्य कार्यालय से संपर्क करें।",
    "or": "କ୍ଷମା କରନ୍ତୁ, ମୁଁ ଏହି ବିଷୟରେ ସୂଚନା ପାଇଲି ନାହିଁ। ଦୟାକରି ଆପଣଙ୍କ ସ୍ଥାନୀୟ ସ୍ୱାସ୍ଥ୍ୟ କାର୍ଯ୍ୟାଳୟ ସହ ଯୋଗାଯୋଗ କରନ୍ତୁ।",
    "ta": "மன்னிக்கவும், இதைப் பற்றிய தகவல் கிடைக்கவில்லை. உங்கள் உள்ளூர் சுகாதார அலுவலகத்தைத் தொடர்பு கொள்ளவும்.",
    "ml": "ക്ഷമിക്കണം, ഇതിനെക്കുറിച്ചുള്ള വിവരങ്ങൾ കണ്ടെത്താനായില്ല. ദയവായി നിങ്ങളുടെ പ്രാദേശിക ആരോഗ്യ ഓഫീസുമായി ബന്ധപ്പെടുക.",
}


def no_info_message(lang: str) -> str:
    return NO_INFO_MESSAGE.get(lang) or NO_INFO_MESSAGE["en"]


class Source(Protocol):
    tag: SourceTag

    async def search(self, query_text: str, user_lang: str) -> Candidate | None: ...


@dataclass(frozen=True)
class Answer:
    text: str
    source: str
    language: str
    translated: bool
    confidence: float | None
    tier: str | None = None


class ArbitrationEngine:
    def __init__(
        self,
        sources: Sequence[Source],
        min_accept_score: float = settings.MIN_ACCEPT_SCORE,
        source_timeout: float | None = settings.SOURCE_TIMEOUT_SECONDS,
    ):
        self.sources = list(sources)
        self.min_accept_score = min_accept_score
        self.source_timeout = source_timeout

    async def _run(self, source: Source, query_text: str, user_lang: str) -> Candidate | None:
        if self.source_timeout is None:
            return await source.search(query_text, user_lang)
        return await asyncio.wait_for(source.search(query_text, user_lang), timeout=self.source_timeout)

    async def gather(self, query_text: str, user_lang: str) -> dict[SourceTag, Candidate | None]:
        """Settle every source; a failing or slow one just contributes nothing."""
        results = await asyncio.gather(
            *(self._run(s, query_text, user_lang) for s in self.sources),
            return_exceptions=True,
        )
        settled: dict[SourceTag, Candidate | None] = {}
        for source, result in zip(self.sources, results):
            if isinstance(result, asyncio.TimeoutError):
                logger.warning("Source %s timed out after %ss", source.tag.value, self.source_timeout)
                result = None
            elif isinstance(result, BaseException):
                logger.error("Source %s failed: %r", source.tag.value, result)
                result = None
            settled[source.tag] = result
        return settled

    @staticmethod
    def _score(candidate: Candidate) -> float:
        return min(max(float(candidate.confidence or 0.0), 0.0), 1.0)

    def pick(self, settled: dict[SourceTag, Candidate | None]) -> tuple[Candidate | None, bool]:
        """
        Choose a candidate. Returns (candidate, scored) where ``scored`` is
        False when the sequential fallback produced it.
        """
        candidates = [c for c in settled.values() if c is not None]
        if candidates:
            best = min(
                candidates,
                key=lambda c: (-self._score(c), SOURCE_PRIORITY.index(c.source)),
            )
            if self._score(best) >= self.min_accept_score:
                return best, True

        for tag in SOURCE_PRIORITY:
            candidate = settled.get(tag)
            if candidate is not None:
                return candidate, False
        return None, False

    async def resolve(self, query_text: str, user_lang: str) -> Answer:
        settled = await self.gather(query_text, user_lang)
        candidate, scored = self.pick(settled)

        if candidate is None:
            logger.info("No source answered, sending fallback message (%s)", user_lang)
            return Answer(
                text=no_info_message(user_lang),
                source=FALLBACK_SOURCE,
                language=user_lang,
                translated=False,
                confidence=None,
            )

        if not scored:
            logger.info("Best score below %.2f, sequential fallback chose %s", self.min_accept_score, candidate.source.value)

        return Answer(
            text=candidate.text,
            source=candidate.source.value,
            language=user_lang,
            translated=candidate.language != user_lang,
            confidence=self._score(candidate) if scored else None,
            tier=candidate.tier.value if hasattr(candidate.tier, "value") else candidate.tier,
        )
