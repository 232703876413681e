"""Tests for the office cost sub-category catalogue."""

import pytest

from maintup_ledger.config.office_catalogue import (
    OFFICE_TYPES,
    _parse_catalogue,
    default_office_category,
    load_office_catalogue,
    office_categories_for,
)


def test_bundled_catalogue_covers_every_type():
    catalogue = load_office_catalogue()

    assert set(catalogue) == set(OFFICE_TYPES)
    assert "Google" in catalogue["fixed"]
    assert "Essence" in catalogue["variable"]
    assert "Salaire" in catalogue["payroll"]


def test_every_type_offers_other():
    for office_type in OFFICE_TYPES:
        assert office_categories_for(office_type)[-1] == "Autre"


def test_unknown_type_is_empty():
    assert office_categories_for("quarterly") == ()
    assert default_office_category("quarterly") is None


def test_default_is_first_label():
    assert default_office_category("fixed") == "Google"


def test_missing_file(tmp_path):
    catalogue = load_office_catalogue(tmp_path / "absent.yaml")

    assert catalogue == {"fixed": (), "variable": (), "payroll": ()}


def test_custom_file(tmp_path):
    path = tmp_path / "office.yaml"
    path.write_text("fixed: [Rent]\nvariable: []\n")

    catalogue = load_office_catalogue(path)

    assert catalogue["fixed"] == ("Rent",)
    assert catalogue["payroll"] == ()


def test_unknown_types_rejected():
    with pytest.raises(ValueError, match="Unknown office types"):
        _parse_catalogue({"fixed": [], "weekly": ["x"]})


def test_non_list_rejected():
    with pytest.raises(ValueError):
        _parse_catalogue({"fixed": "Google"})
