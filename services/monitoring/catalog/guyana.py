"""
Guyana Sample Catalog
=====================

Requirement catalog for Guyanese regulators, used to seed new tenants and in
tests. Amounts are GYD and only illustrate the shape of the data; tenants load
their own calibrated catalogs.

Version: 0.1.0
"""

from copy import deepcopy
from typing import Any


_CORPORATE = ["CORPORATION", "BRANCH", "SUBSIDIARY"]
_TRADING = ["CORPORATION", "PARTNERSHIP", "SOLE_PROPRIETORSHIP"]

VAT_REGISTRATION_THRESHOLD = 10_000_000
NIS_SELF_EMPLOYED_MINIMUM = 156_000


GUYANA_CATALOG: dict[str, Any] = {
    "authorities": [
        {
            "code": "GRA",
            "name": "Guyana Revenue Authority",
            "overdue_deduction": 20,
            "registration_rules": [
                {
                    "id": "GRA_TIN",
                    "registration": "tin",
                    "title": "Tax Identification Number",
                    "deduction": 25,
                    "enforced_level": "critical",
                    "action_required": "Obtain a TIN from the Guyana Revenue Authority",
                },
                {
                    "id": "GRA_VAT_REGISTRATION",
                    "registration": "vat",
                    "title": "VAT registration",
                    "deduction": 30,
                    "applicability": {"min_revenue": VAT_REGISTRATION_THRESHOLD},
                    "enforced_level": "critical",
                    "action_required": "Register for VAT (revenue exceeds GYD 10M)",
                },
            ],
        },
        {
            "code": "NIS",
            "name": "National Insurance Scheme",
            "overdue_deduction": 25,
            "level_thresholds": {
                "critical_below": 60,
                "major_below": 80,
                "minor_below": 100,
            },
            "registration_rules": [
                {
                    "id": "NIS_EMPLOYER",
                    "registration": "nis",
                    "title": "NIS employer registration",
                    "deduction": 40,
                    "applicability": {"min_employees": 1},
                    "enforced_level": "critical",
                    "action_required": "Register with NIS for employee contributions",
                },
                {
                    "id": "NIS_SELF_EMPLOYED",
                    "registration": "nis",
                    "title": "NIS self-employed registration",
                    "deduction": 30,
                    "applicability": {
                        "subject_types": ["SOLE_PROPRIETORSHIP"],
                        "min_revenue": NIS_SELF_EMPLOYED_MINIMUM,
                    },
                    "enforced_level": "major_issues",
                    "action_required": "Register with NIS as a self-employed person",
                },
            ],
        },
        {
            "code": "DCRA",
            "name": "Deeds and Commercial Registry Authority",
        },
        {
            "code": "Immigration",
            "name": "Department of Citizenship and Immigration Services",
        },
    ],
    "requirements": [
        {
            "id": "GRA_CIT_ANNUAL",
            "authority": "GRA",
            "name": "Corporate Income Tax Return",
            "document_type": "Form CIT-1",
            "frequency": "annual",
            "applicability": {"subject_types": _CORPORATE},
            "penalty": {"late_filing_fee": 0, "daily_rate": 5_000, "maximum": 500_000},
            "schedule": {"annual_due_month": 3, "annual_due_day": 31},
            "priority": "high",
        },
        {
            "id": "GRA_VAT_MONTHLY",
            "authority": "GRA",
            "name": "VAT Return",
            "document_type": "Form VAT-1",
            "frequency": "monthly",
            "applicability": {
                "subject_types": _TRADING,
                "min_revenue": VAT_REGISTRATION_THRESHOLD,
            },
            "penalty": {"late_filing_fee": 0, "daily_rate": 2_000, "maximum": 200_000},
            "schedule": {"due_day_offset": 14},
            "priority": "urgent",
        },
        {
            "id": "GRA_WHT_MONTHLY",
            "authority": "GRA",
            "name": "Withholding Tax Return",
            "document_type": "Form WHT-1",
            "frequency": "monthly",
            "applicability": {"subject_types": _CORPORATE, "min_employees": 1},
            "penalty": {"late_filing_fee": 0, "daily_rate": 1_000, "maximum": 100_000},
            "schedule": {"due_day_offset": 14},
            "priority": "high",
        },
        {
            "id": "GRA_PROPERTY_ANNUAL",
            "authority": "GRA",
            "name": "Property Tax Return",
            "document_type": "Form PT-1",
            "frequency": "annual",
            "applicability": {"subject_types": _TRADING},
            "penalty": {"late_filing_fee": 10_000, "daily_rate": 0, "maximum": 10_000},
            "schedule": {"annual_due_month": 4, "annual_due_day": 30},
            "priority": "medium",
        },
        {
            "id": "NIS_MONTHLY_CONTRIBUTIONS",
            "authority": "NIS",
            "name": "Monthly Contribution Return",
            "document_type": "Form NIS-3",
            "frequency": "monthly",
            "applicability": {"min_employees": 1},
            "penalty": {"late_filing_fee": 0, "daily_rate": 500, "maximum": 50_000},
            "schedule": {"due_day_offset": 14},
            "priority": "high",
        },
        {
            "id": "NIS_SELF_EMPLOYED_QUARTERLY",
            "authority": "NIS",
            "name": "Quarterly Self-Employed Contributions",
            "document_type": "Form NIS-5",
            "frequency": "quarterly",
            "applicability": {"subject_types": ["SOLE_PROPRIETORSHIP"]},
            "penalty": {"late_filing_fee": 0, "daily_rate": 200, "maximum": 25_000},
            "schedule": {"due_day_offset": 15},
            "priority": "medium",
        },
        {
            "id": "DCRA_ANNUAL_RETURN",
            "authority": "DCRA",
            "name": "Company Annual Return",
            "document_type": "Annual Return",
            "frequency": "annual",
            "applicability": {"subject_types": _CORPORATE},
            "penalty": {"late_filing_fee": 5_000, "daily_rate": 100, "maximum": 50_000},
            "schedule": {"annual_due_month": 6, "annual_due_day": 30},
            "priority": "medium",
        },
        {
            "id": "IMMIGRATION_WORK_PERMIT",
            "authority": "Immigration",
            "name": "Work Permit Renewal",
            "document_type": "Work Permit Application",
            "frequency": "trigger_based",
            "penalty": {"late_filing_fee": 0, "daily_rate": 0, "maximum": 0},
            "priority": "high",
        },
    ],
}


def guyana_catalog() -> dict[str, Any]:
    """Return a fresh copy of the sample catalog document."""
    return deepcopy(GUYANA_CATALOG)
