"""
Unit tests for the locale index router.
"""

import pytest

from fedsearch.engine.locales import LocaleIndexRouter, StaticLocaleProvider
from fedsearch.errors import LocaleCollisionError


def test_index_name_is_base_plus_locale_letters():
    router = LocaleIndexRouter("MySite")
    assert router.index_name_for("en-US") == "mysitedocsenus"
    assert router.index_name_for("default") == "mysitedocsdefault"


def test_index_name_is_deterministic():
    router = LocaleIndexRouter("site")
    assert router.index_name_for("fr") == router.index_name_for("fr")
    assert router.index_name_for("FR") == "sitedocsfr"


def test_colliding_locales_fail_and_first_registration_survives():
    router = LocaleIndexRouter("site")
    assert router.index_name_for("en-gb") == "sitedocsengb"

    with pytest.raises(LocaleCollisionError) as exc_info:
        router.index_name_for("en_gb")

    assert exc_info.value.existing == "en-gb"
    assert exc_info.value.index_name == "sitedocsengb"
    # The first locale keeps working
    assert router.index_name_for("en-gb") == "sitedocsengb"


def test_without_locale_subsystem_there_is_one_default_locale():
    router = LocaleIndexRouter("site")
    assert router.locales_enabled is False
    assert router.enumerate_locales() == ["default"]
    assert router.index_names() == ["sitedocsdefault"]


def test_enumerates_active_locales_in_order():
    router = LocaleIndexRouter("site", StaticLocaleProvider(["en", "fr", "en", "de-draft"]))
    assert router.locales_enabled is True
    assert router.enumerate_locales() == ["en", "fr", "de-draft"]
    assert router.index_names() == ["sitedocsen", "sitedocsfr", "sitedocsdedraft"]
