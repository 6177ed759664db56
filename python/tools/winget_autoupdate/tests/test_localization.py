#!/usr/bin/env python3
"""
Tests for the notification templates.
"""

from unittest.mock import patch

import pytest

from winget_autoupdate.exceptions import ConfigError
from winget_autoupdate.localization import (
    EventKind,
    available_languages,
    load_locale,
    parse_templates,
)


def test_shipped_languages():
    assert {"en", "fr", "de"} <= set(available_languages())


@pytest.mark.parametrize("language", ["en", "fr", "de"])
def test_every_shipped_locale_covers_all_events(language):
    templates = load_locale(language)
    assert templates.language == language
    for kind in EventKind:
        title, message = templates.render(kind, "App", "1.0", "2.0")
        assert title
        assert message


@pytest.mark.parametrize(
    "culture, expected",
    [("fr_FR", "fr"), ("de-AT", "de"), ("en_US", "en"), ("ja_JP", "en"), ("C", "en")],
)
def test_culture_prefix_selects_language(culture, expected):
    assert load_locale(culture).language == expected


def test_detected_culture_used_when_none_given():
    with patch("winget_autoupdate.localization.detect_culture", return_value="fr_CA"):
        assert load_locale().language == "fr"


def test_undetectable_culture_falls_back_to_english():
    with patch("winget_autoupdate.localization.detect_culture", return_value=None):
        assert load_locale().language == "en"


def test_placeholders_are_positional():
    templates = load_locale("en")
    title, message = templates.render(EventKind.UPDATE_STARTING, "7-Zip", "22.01", "23.01")
    assert title == "7-Zip will be updated!"
    assert message == "22.01 -> 23.01"


def test_incomplete_locale_file():
    content = "<locale><output><title>t</title><message>m</message></output></locale>"
    with pytest.raises(ConfigError):
        parse_templates(content, "xx")


def test_malformed_locale_file():
    with pytest.raises(ConfigError):
        parse_templates("<locale><output>", "xx")
