import pytest
from pydantic import ValidationError

from utility_mcp.models import tool_schema as schema
from utility_mcp.tests.conftest import UTILITY_ID


def test_customers_count_defaults_all_customers_to_false():
    req = schema.GetCustomersCountRequest.model_validate({"utilityId": UTILITY_ID})
    assert req.allCustomers is False


def test_customers_count_rejects_unknown_field():
    with pytest.raises(ValidationError) as ie:
        schema.GetCustomersCountRequest.model_validate(
            {"utilityId": UTILITY_ID, "allCustomers": True, "includeDeleted": True}
        )
    errors = ie.value.errors()
    assert errors[0]["type"] == "extra_forbidden"
    assert errors[0]["loc"] == ("includeDeleted",)


def test_missing_utility_id_is_rejected():
    with pytest.raises(ValidationError) as ie:
        schema.GetMonthlyPaymentTotalsRequest.model_validate({"month": "2024-01"})
    assert ("utilityId",) in [e["loc"] for e in ie.value.errors()]


@pytest.mark.parametrize("utility_id", [UTILITY_ID[:-1], UTILITY_ID + "0", ""])
def test_utility_id_must_be_24_characters(utility_id):
    with pytest.raises(ValidationError):
        schema.GetUtilityInfoRequest.model_validate({"utilityId": utility_id})


@pytest.mark.parametrize(
    "model,field,good,bad",
    [
        (schema.GetMonthlyEnergySummaryRequest, "month", "2024-01", ["2024-1", "2024-01-01", "202401x"]),
        (schema.GetDailyEnergySummaryRequest, "date", "2024-01-05", ["2024-1-5", "2024-01", "2024/01/05"]),
        (schema.GetYearlyEnergySummaryRequest, "year", "2024", ["24", "20245", "year"]),
        (schema.GetYearlyPaymentTotalsRequest, "year", "2023", ["2023-"]),
    ],
)
def test_calendar_fields_have_fixed_formats(model, field, good, bad):
    assert getattr(model.model_validate({"utilityId": UTILITY_ID, field: good}), field) == good
    for value in bad:
        with pytest.raises(ValidationError):
            model.model_validate({"utilityId": UTILITY_ID, field: value})


def test_customer_type_counts_use_display_names():
    counts = schema.CustomerTypeCounts.model_validate(
        {"Residential": 3, "Commercial": 0, "Industrial": 1, "Public Facility": 2, "Other": 0}
    )
    assert counts.public_facility == 2
    assert counts.model_dump(by_alias=True)["Public Facility"] == 2


def test_customer_type_counts_require_every_type():
    with pytest.raises(ValidationError):
        schema.CustomerTypeCounts.model_validate({"Residential": 3})


def test_payment_totals_reject_extra_keys():
    with pytest.raises(ValidationError):
        schema.MonthlyPaymentTotalsResponse.validate_python(
            [{"customer_type": "Residential", "totalAmount": 1, "totalKWh": 1, "currency": "LSL", "x": 1}]
        )


def test_yearly_energy_summary_needs_twelve_months():
    zero = {"Residential": 0, "Commercial": 0, "Industrial": 0, "Public Facility": 0, "Other": 0}
    month = {"month": "2024-01", "totalKWh": 0, "consumptionByCustomerType": zero}
    payload = {
        "year": "2024",
        "totalKWh": 0,
        "customerCount": 0,
        "consumptionByCustomerType": zero,
        "monthly": [month] * 11,
        "topConsumers": [],
    }
    with pytest.raises(ValidationError):
        schema.YearlyEnergySummaryResponse.model_validate(payload)

    payload["monthly"] = [month] * 12
    assert len(schema.YearlyEnergySummaryResponse.model_validate(payload).monthly) == 12


def test_top_consumers_are_capped_at_ten():
    zero = {"Residential": 0, "Commercial": 0, "Industrial": 0, "Public Facility": 0, "Other": 0}
    consumers = [{"customerId": str(i), "name": f"c{i}", "totalKWh": 1} for i in range(11)]
    with pytest.raises(ValidationError):
        schema.MonthlyEnergySummaryResponse.model_validate(
            {
                "month": "2024-01",
                "totalKWh": 11,
                "customerCount": 11,
                "consumptionByCustomerType": zero,
                "topConsumers": consumers,
            }
        )
