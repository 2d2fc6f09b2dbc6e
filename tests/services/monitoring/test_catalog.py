"""
Catalog Loader Tests
====================

Tests for catalog validation and the Guyana sample catalog.

Version: 0.1.0
"""

from typing import Any

from services.monitoring.catalog import guyana_catalog, load_catalog
from shared.models.compliance import ComplianceLevel
from shared.models.requirement import Frequency


def _minimal() -> dict[str, Any]:
    return {
        "authorities": [{"code": "GRA", "name": "Revenue"}],
        "requirements": [
            {
                "id": "GRA_VAT_MONTHLY",
                "authority": "GRA",
                "name": "VAT Return",
                "frequency": "monthly",
                "penalty": {"daily_rate": 2_000, "maximum": 200_000},
            }
        ],
    }


class TestGuyanaCatalog:
    """Tests for the sample catalog."""

    def test_loads_without_errors(self) -> None:
        """Test every sample entry validates."""
        catalog = load_catalog(guyana_catalog())

        assert catalog.errors == []
        assert set(catalog.authorities) == {"GRA", "NIS", "DCRA", "Immigration"}
        assert len(catalog.requirements) == 8

    def test_registration_rules(self) -> None:
        """Test registration rules load with their enforced levels."""
        catalog = load_catalog(guyana_catalog())
        rules = {r.id: r for r in catalog.authorities["GRA"].registration_rules}

        assert rules["GRA_VAT_REGISTRATION"].is_hard
        assert rules["GRA_VAT_REGISTRATION"].applicability.min_revenue == 10_000_000
        nis_self = catalog.authorities["NIS"].registration_rules[1]
        assert nis_self.enforced_level == ComplianceLevel.MAJOR_ISSUES
        assert not nis_self.is_hard

    def test_nis_thresholds(self) -> None:
        """Test NIS uses its stricter level buckets."""
        thresholds = load_catalog(guyana_catalog()).authorities["NIS"].level_thresholds

        assert thresholds.critical_below == 60
        assert thresholds.level_for(55) == ComplianceLevel.CRITICAL
        assert thresholds.level_for(75) == ComplianceLevel.MAJOR_ISSUES
        assert thresholds.level_for(100) == ComplianceLevel.COMPLIANT

    def test_fresh_copy(self) -> None:
        """Test callers cannot mutate the shared sample."""
        document = guyana_catalog()
        document["authorities"].clear()

        assert guyana_catalog()["authorities"]

    def test_requirements_for(self) -> None:
        """Test requirements are grouped by authority."""
        catalog = load_catalog(guyana_catalog())

        gra = [r.id for r in catalog.requirements_for("GRA")]
        assert gra == ["GRA_CIT_ANNUAL", "GRA_VAT_MONTHLY", "GRA_WHT_MONTHLY", "GRA_PROPERTY_ANNUAL"]
        assert catalog.get_requirement("IMMIGRATION_WORK_PERMIT").frequency == Frequency.TRIGGER_BASED
        assert catalog.get_requirement("UNKNOWN") is None


class TestLoadCatalog:
    """Tests for load_catalog error handling."""

    def test_string_penalty_excluded(self) -> None:
        """Test a requirement with a string amount is dropped and reported."""
        document = _minimal()
        document["requirements"].append(
            {
                "id": "GRA_BAD",
                "authority": "GRA",
                "name": "Broken",
                "frequency": "monthly",
                "penalty": {"daily_rate": "lots", "maximum": 100},
            }
        )

        catalog = load_catalog(document)

        assert [r.id for r in catalog.requirements] == ["GRA_VAT_MONTHLY"]
        assert len(catalog.errors) == 1
        assert catalog.errors[0].entry_id == "GRA_BAD"

    def test_unknown_authority(self) -> None:
        """Test requirements must reference a known authority."""
        document = _minimal()
        document["requirements"][0]["authority"] = "MARAD"

        catalog = load_catalog(document)

        assert catalog.requirements == []
        assert "unknown authority" in catalog.errors[0].reason

    def test_duplicate_requirement_id(self) -> None:
        """Test only the first of two requirements with one id is kept."""
        document = _minimal()
        document["requirements"].append(dict(document["requirements"][0]))

        catalog = load_catalog(document)

        assert len(catalog.requirements) == 1
        assert catalog.errors[0].reason == "duplicate requirement id"

    def test_duplicate_authority_code(self) -> None:
        """Test duplicate authority codes are rejected."""
        document = _minimal()
        document["authorities"].append({"code": "GRA", "name": "Again"})

        catalog = load_catalog(document)

        assert len(catalog.authorities) == 1
        assert catalog.errors[0].entry_id == "GRA"

    def test_bad_registration_rule_drops_only_itself(self) -> None:
        """Test a malformed registration rule leaves the authority usable."""
        document = _minimal()
        document["authorities"][0]["registration_rules"] = [
            {"id": "GRA_TIN", "registration": "tin", "title": "TIN", "deduction": 25},
            {"id": "GRA_BROKEN", "registration": "vat", "title": "VAT", "deduction": 400},
        ]

        catalog = load_catalog(document)

        rules = catalog.authorities["GRA"].registration_rules
        assert [r.id for r in rules] == ["GRA_TIN"]
        assert catalog.errors[0].entry_id == "GRA_BROKEN"

    def test_non_mapping_authority(self) -> None:
        """Test a non-mapping authority entry is reported."""
        document = _minimal()
        document["authorities"].append("NIS")

        catalog = load_catalog(document)

        assert catalog.errors[0].entry_id == "authorities[1]"

    def test_empty_document(self) -> None:
        """Test an empty catalog loads as empty."""
        catalog = load_catalog({})

        assert catalog.is_empty
        assert catalog.errors == []

    def test_unknown_frequency(self) -> None:
        """Test an unknown frequency is a configuration error."""
        document = _minimal()
        document["requirements"][0]["frequency"] = "fortnightly"

        catalog = load_catalog(document)

        assert catalog.requirements == []
        assert catalog.errors[0].entry_id == "GRA_VAT_MONTHLY"
