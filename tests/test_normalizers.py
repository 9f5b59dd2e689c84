# tests/test_normalizers.py

"""
Unit tests of app.utils.normalizers (no database).
"""

import pytest

from app.domains.fms.models import EquipmentStatus
from app.utils.normalizers import normalize_name, normalize_status, split_city_uf


@pytest.mark.parametrize(
    "value, expected",
    [
        ("ativo", EquipmentStatus.ACTIVE),
        (" Atendimento ", EquipmentStatus.IN_SERVICE),
        ("DESATIVADO", EquipmentStatus.DEACTIVATED),
        ("deletado", EquipmentStatus.DELETED),
        (0, EquipmentStatus.ACTIVE),
        (1, EquipmentStatus.IN_SERVICE),
        ("2", EquipmentStatus.DEACTIVATED),
        (3, EquipmentStatus.DELETED),
        ("in_service", EquipmentStatus.IN_SERVICE),
        (EquipmentStatus.DELETED, EquipmentStatus.DELETED),
    ],
)
def test_normalize_status_known_tokens(value, expected):
    assert normalize_status(value) == expected


@pytest.mark.parametrize("value", [None, "", "unknown", 7, "-1"])
def test_normalize_status_defaults_to_active(value):
    assert normalize_status(value) == EquipmentStatus.ACTIVE


def test_normalize_name_folds_accents_case_and_spaces():
    assert normalize_name("  São   Paulo ") == "sao paulo"
    assert normalize_name("GOIÂNIA") == "goiania"
    assert normalize_name("Itaú de Minas") == normalize_name("itau de minas")


def test_normalize_name_empty():
    assert normalize_name(None) == ""
    assert normalize_name("") == ""


def test_split_city_uf():
    assert split_city_uf("Belo Horizonte/mg") == ("Belo Horizonte", "MG")
    assert split_city_uf(" Contagem / MG ") == ("Contagem", "MG")
    assert split_city_uf("Betim") == ("Betim", None)
    assert split_city_uf("Betim/") == ("Betim", None)
    assert split_city_uf(None) == ("", None)
