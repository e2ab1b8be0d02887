# translation.py
# Hybrid translation: cache -> online provider -> offline dictionary -> original text.

import asyncio
import copy
import dataclasses
import logging
import threading
import time
from typing import Any, Iterable, Protocol

from deep_translator import GoogleTranslator

import languages
from config import settings
from offline_dictionary import translate_offline

logger = logging.getLogger(__name__)

CANONICAL_LANGUAGE = "en"


class TranslationProvider(Protocol):
    async def translate(self, text: str, target: str, source: str) -> str: ...


class GoogleTranslateProvider:
    """Online provider backed by deep-translator's Google client."""

    def __init__(self, timeout: float = settings.TRANSLATION_TIMEOUT_SECONDS):
        self.timeout = timeout

    def _translate_blocking(self, text: str, target: str, source: str) -> str:
        return GoogleTranslator(source=source, target=target).translate(text)

    async def translate(self, text: str, target: str, source: str) -> str:
        # the client is blocking; keep it off the event loop and bounded
        return await asyncio.wait_for(
            asyncio.to_thread(self._translate_blocking, text, target, source),
            timeout=self.timeout,
        )


class TranslationCache:
    """Process-wide (source, target, text) -> translation map with a TTL."""

    def __init__(self, ttl_seconds: float = settings.TRANSLATION_CACHE_TTL_SECONDS):
        self.ttl_seconds = ttl_seconds
        self._entries: dict[tuple[str, str, str], tuple[str, float]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, source: str, target: str, text: str) -> str | None:
        key = (source, target, text)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            value, stored_at = entry
            if time.monotonic() - stored_at > self.ttl_seconds:
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return value

    def put(self, source: str, target: str, text: str, value: str) -> None:
        # entries are pure functions of their key, last writer wins
        with self._lock:
            self._entries[(source, target, text)] = (value, time.monotonic())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)


class TranslationGateway:
    def __init__(
        self,
        provider: TranslationProvider | None = None,
        cache: TranslationCache | None = None,
    ):
        self.provider = provider if provider is not None else GoogleTranslateProvider()
        self.cache = cache if cache is not None else TranslationCache()

    async def translate(self, text: str, target_lang: str, source_lang: str = "auto") -> str:
        """
        Translate ``text`` into ``target_lang``.

        Never raises: a failing provider degrades to the offline dictionary,
        which returns the input untouched for words it does not know.
        """
        if not text:
            return ""

        target = languages.normalize_language(target_lang)
        if not source_lang or source_lang == "auto":
            source = languages.detect(text)
        else:
            source = languages.normalize_language(source_lang)

        if source == target:
            return text

        cached = self.cache.get(source, target, text)
        if cached is not None:
            return cached

        try:
            translated = await self.provider.translate(text, target, source)
        except Exception as e:
            logger.warning("Online translation %s->%s failed, using offline dictionary: %s", source, target, e)
            return translate_offline(text, target, source)

        if not translated:
            logger.warning("Online translation %s->%s returned nothing, using offline dictionary", source, target)
            return translate_offline(text, target, source)

        self.cache.put(source, target, text, translated)
        return translated

    async def translate_fields(
        self,
        record: Any,
        field_names: Iterable[str],
        target_lang: str,
        source_lang: str = CANONICAL_LANGUAGE,
    ) -> Any:
        """
        Shallow copy of ``record`` (dict or dataclass) with the named string
        fields translated. Missing or non-string fields are left alone.
        """
        if dataclasses.is_dataclass(record):
            values = {}
            for name in field_names:
                value = getattr(record, name, None)
                if isinstance(value, str) and value:
                    values[name] = await self.translate(value, target_lang, source_lang)
            return dataclasses.replace(record, **values)

        out = copy.copy(record)
        for name in field_names:
            value = out.get(name)
            if isinstance(value, str) and value:
                out[name] = await self.translate(value, target_lang, source_lang)
        return out

    def cache_stats(self) -> dict:
        return {"size": len(self.cache), "hits": self.cache.hits, "misses": self.cache.misses}

    def clear_cache(self) -> None:
        self.cache.clear()
