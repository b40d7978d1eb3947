"""Tests for the element, interaction and scenario catalogs."""

import dataclasses

import pytest

from tipcascade import (
    ELEMENTS,
    INTERACTIONS,
    SCENARIOS,
    CatalogIntegrityError,
    Interaction,
    InteractionType,
    InvalidReferenceError,
    Scenario,
    get_element,
    get_scenario,
    list_elements,
    list_scenarios,
)
from tipcascade.core.elements import validate_elements
from tipcascade.core.interactions import (
    active_interactions,
    incoming_interactions,
    validate_interactions,
)
from tipcascade.scenarios import validate_scenarios


class TestElements:
    def test_registry_contents(self):
        assert list_elements() == ["greenland", "wais", "amoc", "amazon"]
        assert ELEMENTS["amazon"].threshold_range == (3.5, 4.5)
        assert ELEMENTS["amoc"].full_name == "Atlantic Meridional Overturning Circulation"
    
    def test_thresholds_ordered(self):
        for element in ELEMENTS.values():
            assert 0 < element.threshold_min < element.threshold_max
    
    def test_unknown_element(self):
        with pytest.raises(InvalidReferenceError, match="permafrost"):
            get_element("permafrost")
    
    def test_inverted_threshold_rejected(self):
        bad = dataclasses.replace(ELEMENTS["amazon"], threshold_min=4.5, threshold_max=3.5)
        with pytest.raises(CatalogIntegrityError):
            validate_elements({"amazon": bad})
    
    def test_equal_threshold_rejected(self):
        bad = dataclasses.replace(ELEMENTS["amazon"], threshold_max=3.5)
        with pytest.raises(CatalogIntegrityError):
            validate_elements({"amazon": bad})
    
    def test_key_mismatch_rejected(self):
        with pytest.raises(CatalogIntegrityError):
            validate_elements({"forest": ELEMENTS["amazon"]})
    
    def test_metadata_passthrough(self):
        data = ELEMENTS["greenland"].as_dict()
        assert data["position"] == {"x": 50.0, "y": 8.0}
        assert data["color"] == "#60a5fa"


class TestInteractions:
    def test_table_size(self):
        assert len(INTERACTIONS) == 7
    
    def test_unclear_alias(self):
        interaction = Interaction("wais", "amoc", "unclear", 3)
        assert interaction.type is InteractionType.UNCERTAIN
    
    def test_unknown_type(self):
        with pytest.raises(CatalogIntegrityError):
            Interaction("wais", "amoc", "chaotic", 3)
    
    def test_contributions(self):
        destab = Interaction("greenland", "amoc", "destabilizing", 10)
        stab = Interaction("amoc", "greenland", "stabilizing", 10)
        unclear = Interaction("amoc", "amazon", "uncertain", 3)
        assert destab.contribution(0.35) == pytest.approx(35.0)
        assert stab.contribution(0.35) == pytest.approx(-42.0)
        assert unclear.contribution(0.35) == pytest.approx(4.2)
    
    def test_self_loop_rejected(self):
        with pytest.raises(CatalogIntegrityError):
            validate_interactions([Interaction("amoc", "amoc", "destabilizing", 1)])
    
    def test_unknown_endpoint_rejected(self):
        with pytest.raises(CatalogIntegrityError):
            validate_interactions([Interaction("amoc", "coral", "destabilizing", 1)])
    
    def test_non_positive_strength_rejected(self):
        with pytest.raises(CatalogIntegrityError):
            validate_interactions([Interaction("amoc", "wais", "destabilizing", 0)])
    
    def test_incoming_and_active(self):
        sources = {i.source for i in incoming_interactions("amoc")}
        assert sources == {"greenland", "wais"}
        active = active_interactions(["amoc"])
        assert {i.target for i in active} == {"greenland", "wais", "amazon"}


class TestScenarios:
    def test_all_scenarios_exist(self):
        assert list_scenarios() == ["paris15", "paris2", "current", "worst"]
    
    def test_worst_case(self):
        worst = SCENARIOS["worst"]
        assert worst.target_temp == 4.0
        assert worst.years_to_target == 75
    
    @pytest.mark.parametrize("alias,expected", [
        ("WORST", "worst"),
        ("paris-1.5", "paris15"),
        ("high_emissions", "worst"),
        ("current policies", "current"),
    ])
    def test_aliases(self, alias, expected):
        assert get_scenario(alias).id == expected
    
    def test_unknown_scenario(self):
        with pytest.raises(InvalidReferenceError):
            get_scenario("ssp585")
    
    def test_invalid_duration_rejected(self):
        bad = Scenario(id="bad", name="Bad", icon="", target_temp=2.0, years_to_target=0)
        with pytest.raises(CatalogIntegrityError):
            validate_scenarios({"bad": bad})
