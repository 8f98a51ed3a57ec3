from __future__ import annotations
from functools import lru_cache

from iknoweverything.config import get_settings
from iknoweverything.providers.base import ChatProvider
from iknoweverything.providers.gemini import GeminiProvider


@lru_cache()
def get_provider() -> ChatProvider:
    return GeminiProvider(get_settings())
