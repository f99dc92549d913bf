from typing import List, Optional, Tuple
from ytrelay.config.settings import config
from ytrelay.i18n import i18n

def _weighted_languages(accept_language: str) -> List[str]:
    """Primary language subtags ordered by q-weight, ``q=0`` dropped"""
    weighted: List[Tuple[float, int, str]] = []
    for position, item in enumerate(accept_language.split(",")):
        tag, _, params = item.strip().partition(";")
        language = tag.strip().split("-")[0].lower()
        weight = 1.0
        for param in params.split(";"):
            key, _, value = param.strip().partition("=")
            if key.strip() == "q":
                try:
                    weight = float(value)
                except ValueError:
                    weight = 0.0
        if language and weight > 0:
            weighted.append((-weight, position, language))

    return [language for _, _, language in sorted(weighted)]

def get_locale(accept_language: Optional[str] = None) -> str:
    """
    Pick the response locale from an Accept-Language header.
    Only locales that are both configured and have a loaded catalog qualify.
    """
    if not accept_language:
        return config.i18n.default_locale

    available = set(config.i18n.supported_locales) & i18n.available()
    for language in _weighted_languages(accept_language):
        if language in available:
            return language

    return config.i18n.default_locale
