from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# -------------------------
# Request contracts
# -------------------------

UtilityId = Annotated[
    str,
    Field(min_length=24, max_length=24, description="The ID of the utility (24 characters)"),
]
Month = Annotated[
    str,
    Field(
        min_length=7,
        max_length=7,
        pattern=r"^\d{4}-\d{2}$",
        description="The month to summarise, in the format YYYY-MM",
    ),
]
Day = Annotated[
    str,
    Field(
        min_length=10,
        max_length=10,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="The date to summarise, in the format YYYY-MM-DD",
    ),
]
Year = Annotated[
    str,
    Field(min_length=4, max_length=4, pattern=r"^\d{4}$", description="The year to summarise, in the format YYYY"),
]


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class GetUtilityInfoRequest(StrictModel):
    utilityId: UtilityId


class GetCustomersCountRequest(StrictModel):
    utilityId: UtilityId
    allCustomers: bool = Field(
        default=False,
        description="Whether to include inactive customers. If not provided, only active customers are counted.",
    )


class GetMonthlyPaymentTotalsRequest(StrictModel):
    utilityId: UtilityId
    month: Month


class GetMonthlyEnergySummaryRequest(StrictModel):
    utilityId: UtilityId
    month: Month


class GetDailyEnergySummaryRequest(StrictModel):
    utilityId: UtilityId
    date: Day


class GetYearlyEnergySummaryRequest(StrictModel):
    utilityId: UtilityId
    year: Year


class GetYearlyPaymentTotalsRequest(StrictModel):
    utilityId: UtilityId
    year: Year


# -------------------------
# Response contracts
# -------------------------

class CustomerTypeCounts(StrictModel):
    residential: int = Field(alias="Residential")
    commercial: int = Field(alias="Commercial")
    industrial: int = Field(alias="Industrial")
    public_facility: int = Field(alias="Public Facility")
    other: int = Field(alias="Other")


class CustomerTypeConsumption(StrictModel):
    residential: float = Field(alias="Residential")
    commercial: float = Field(alias="Commercial")
    industrial: float = Field(alias="Industrial")
    public_facility: float = Field(alias="Public Facility")
    other: float = Field(alias="Other")


class SystemComponentInfo(StrictModel):
    component: str
    capacity: float
    unit: str


class UtilityInfoResponse(StrictModel):
    name: str
    acronym: str
    country: str
    systemType: str
    systemDescription: str
    systemComponents: List[SystemComponentInfo]
    totalInstalledCapacitykW: Optional[float] = None
    numberOfCustomers: Optional[int] = None
    isActive: Optional[bool] = None


class CustomerCountResponse(StrictModel):
    totalCustomers: int
    customerType: CustomerTypeCounts
    utility: Optional[UtilityInfoResponse] = None


class PaymentTotal(StrictModel):
    customer_type: str
    totalAmount: float
    totalKWh: float
    currency: str


MonthlyPaymentTotalsResponse = TypeAdapter(List[PaymentTotal])


class TopConsumer(StrictModel):
    customerId: str
    name: str
    totalKWh: float


class HourlyConsumption(StrictModel):
    hour: str
    totalKWh: float


class DailyEnergySummaryResponse(StrictModel):
    date: str
    totalKWh: float
    customerCount: int
    consumptionByCustomerType: CustomerTypeConsumption
    hourlyConsumption: List[HourlyConsumption] = Field(min_length=24, max_length=24)


class MonthlyEnergySummaryResponse(StrictModel):
    month: str
    totalKWh: float
    customerCount: int
    consumptionByCustomerType: CustomerTypeConsumption
    topConsumers: List[TopConsumer] = Field(max_length=10)


class MonthEnergyEntry(StrictModel):
    month: str
    totalKWh: float
    consumptionByCustomerType: CustomerTypeConsumption


class YearlyEnergySummaryResponse(StrictModel):
    year: str
    totalKWh: float
    customerCount: int
    consumptionByCustomerType: CustomerTypeConsumption
    monthly: List[MonthEnergyEntry] = Field(min_length=12, max_length=12)
    topConsumers: List[TopConsumer] = Field(max_length=10)


class MonthPaymentEntry(StrictModel):
    month: str
    totalAmount: float
    totalKWh: float
    currency: Optional[str] = None
    byCustomerType: List[PaymentTotal]


class YearlyPaymentTotalsResponse(StrictModel):
    year: str
    totalAmount: float
    totalKWh: float
    currency: Optional[str] = None
    months: List[MonthPaymentEntry] = Field(min_length=12, max_length=12)
