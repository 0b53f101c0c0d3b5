import pytest

from aobo_access.errors import UnknownRegionError
from aobo_access.principals import PRINCIPALS, Region, build_catalog, get_principal


def test_au_region_selects_insight_au_group():
    principal = get_principal("AU")

    assert principal.object_id == "b1d52de1-30aa-48de-9220-c93f9b6c5711"
    assert principal.display_name == "Insight AU"


def test_region_lookup_is_case_insensitive():
    assert get_principal(" au ") == get_principal(Region.AU)


def test_unknown_region_is_rejected():
    with pytest.raises(UnknownRegionError):
        get_principal("US")


def test_region_without_object_id_is_rejected():
    catalog = build_catalog(environ={})

    with pytest.raises(UnknownRegionError, match="AOBO_PRINCIPAL_ID_NZ"):
        get_principal("NZ", catalog=catalog)


def test_object_ids_can_come_from_environment():
    catalog = build_catalog(environ={"AOBO_PRINCIPAL_ID_SG": " 0d6a3c5e-7a3e-4c55-9f0e-4b1c2d3e4f50 "})

    principal = get_principal("SG", catalog=catalog)
    assert principal.object_id == "0d6a3c5e-7a3e-4c55-9f0e-4b1c2d3e4f50"
    assert principal.display_name == "Insight SG"


def test_catalog_is_read_only():
    with pytest.raises(TypeError):
        PRINCIPALS[Region.NZ] = None
