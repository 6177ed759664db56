#!/usr/bin/env python3
"""
Notification text templates.

Each locale file under ``data/locale`` holds an ordered list of ``<output>``
entries, one per :class:`EventKind`, each with a ``<title>`` and a
``<message>``. Placeholders are positional ``str.format`` fields.
"""

from __future__ import annotations

import locale
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import IntEnum
from importlib import resources
from typing import Optional

from loguru import logger

from .exceptions import ConfigError

DEFAULT_LANGUAGE = "en"
LOCALE_PACKAGE = "winget_autoupdate.data.locale"


class EventKind(IntEnum):
    """Position of each event's template in a locale file"""

    UPDATE_STARTING = 0
    UPDATE_SUCCEEDED = 1
    UPDATE_FAILED = 2
    NETWORK_WAITING = 3
    NETWORK_TIMEOUT = 4
    SELF_UPDATE_STARTING = 5
    SELF_UPDATE_SUCCEEDED = 6
    SELF_UPDATE_FAILED = 7


@dataclass(frozen=True, slots=True)
class Template:
    title: str
    message: str

    def render(self, *args: object) -> tuple[str, str]:
        return self.title.format(*args), self.message.format(*args)


@dataclass(frozen=True, slots=True)
class LocaleTemplates:
    """The template set chosen for this run"""

    language: str
    templates: tuple[Template, ...]

    def get(self, kind: EventKind) -> Template:
        return self.templates[kind]

    def render(self, kind: EventKind, *args: object) -> tuple[str, str]:
        return self.get(kind).render(*args)


def detect_culture() -> Optional[str]:
    """
    Return the user interface culture, e.g. "fr_FR".

    On Windows this is the UI language of the current user, which may differ
    from the regional format returned by :func:`locale.getlocale`.
    """
    if sys.platform == "win32":
        import ctypes

        lang_id = ctypes.windll.kernel32.GetUserDefaultUILanguage()
        culture = locale.windows_locale.get(lang_id)
        if culture:
            return culture

    culture, _ = locale.getlocale()
    return culture


def available_languages() -> list[str]:
    files = resources.files(LOCALE_PACKAGE).iterdir()
    return sorted(f.name[: -len(".xml")] for f in files if f.name.endswith(".xml"))


def parse_templates(content: str, language: str) -> LocaleTemplates:
    """Parse the XML text of a locale file."""
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ConfigError(f"Malformed locale file for '{language}': {e}", original_error=e) from e

    templates = tuple(
        Template(
            title=(output.findtext("title") or "").strip(),
            message=(output.findtext("message") or "").strip(),
        )
        for output in root.iter("output")
    )
    if len(templates) < len(EventKind):
        raise ConfigError(
            f"Locale '{language}' defines {len(templates)} templates, "
            f"{len(EventKind)} are required"
        )
    return LocaleTemplates(language=language, templates=templates)


def load_locale(culture: Optional[str] = None) -> LocaleTemplates:
    """
    Load the notification templates matching a culture.

    Args:
        culture: Culture name such as "de_DE" or "fr-CA"; detected when None

    Returns:
        Templates for the culture's language, or the English set when that
        language is not shipped
    """
    if culture is None:
        culture = detect_culture()

    language = (culture or DEFAULT_LANGUAGE).replace("-", "_").split("_")[0].lower()
    if language not in available_languages():
        logger.debug(f"No templates for '{language}', falling back to '{DEFAULT_LANGUAGE}'")
        language = DEFAULT_LANGUAGE

    content = resources.files(LOCALE_PACKAGE).joinpath(f"{language}.xml").read_text(
        encoding="utf-8"
    )
    logger.debug(f"Notification language: {language}")
    return parse_templates(content, language)
