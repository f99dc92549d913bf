import json
import logging
import os
from typing import Any, Dict, Optional
from ytrelay.config.settings import config

logger = logging.getLogger(__name__)

LOCALES_DIR = os.path.join(os.path.dirname(__file__), "locales")

class I18n:
    """Message catalogs keyed by locale, looked up with dotted keys"""

    def __init__(self, locales_dir: str = LOCALES_DIR):
        self.locales: Dict[str, Dict[str, Any]] = {}
        self.default_locale = config.i18n.default_locale
        self.load_locales(locales_dir)

    def load_locales(self, locales_dir: str) -> None:
        if not os.path.isdir(locales_dir):
            logger.warning(f"Locales directory not found at {locales_dir}")
            return

        for filename in sorted(os.listdir(locales_dir)):
            if not filename.endswith(".json"):
                continue
            locale_code = filename[:-5]
            try:
                with open(os.path.join(locales_dir, filename), "r", encoding="utf-8") as f:
                    self.locales[locale_code] = json.load(f)
            except (OSError, ValueError) as e:
                logger.error(f"Error loading locale {locale_code}: {e}")

    def available(self) -> set:
        return set(self.locales)

    def _lookup(self, locale: str, key: str) -> Optional[Any]:
        value: Any = self.locales.get(locale)
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return None
            value = value[part]
        return value

    def get(self, key: str, locale: Optional[str] = None, **kwargs) -> str:
        """
        Message for ``key`` (e.g. "error.invalid_video"), formatted with kwargs.
        Falls back to the default locale, then to the key itself.
        """
        value = None
        for candidate in (locale, self.default_locale, "en"):
            if candidate and candidate in self.locales:
                value = self._lookup(candidate, key)
                if value is not None:
                    break

        if value is None:
            return key
        if not isinstance(value, str):
            return str(value)
        try:
            return value.format(**kwargs)
        except (KeyError, IndexError):
            return value

i18n = I18n()
