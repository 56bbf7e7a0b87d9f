"""Shapes of the externally owned collections this service reads.

The service never writes these collections; the models document the
fields the aggregations rely on and are used to build seed data.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator

UTILITIES = "utilities"
CUSTOMERS = "customers"
PAYMENTS = "payments"
DAILY_ENERGY_SUMMARY = "daily_energy_summary"
METERS = "meters"

HOURS = [f"{h:02d}" for h in range(24)]


class CustomerType(str, Enum):
    RESIDENTIAL = "Residential"
    COMMERCIAL = "Commercial"
    INDUSTRIAL = "Industrial"
    PUBLIC_FACILITY = "Public Facility"
    OTHER = "Other"


CUSTOMER_TYPES = [t.value for t in CustomerType]


class SystemType(str, Enum):
    LV_OFF_GRID = "lv-off-grid"
    MV_OFF_GRID = "mv-off-grid"
    GRID_CONNECTED = "grid-connected"


class _Document(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, extra="allow", populate_by_name=True)


class SystemComponent(BaseModel):
    component: str
    capacity: float
    unit: str


class PopulationServed(BaseModel):
    males: Optional[int] = None
    females: Optional[int] = None


class Utility(_Document):
    id: Optional[ObjectId] = Field(default=None, alias="_id")
    name: str
    acronym: str = "-"
    country: str
    address: Optional[str] = None
    contactEmail: Optional[str] = None
    contactPhone: Optional[str] = None
    logoUrl: Optional[str] = None
    totalInstalledCapacitykW: Optional[float] = None
    systemComponents: List[SystemComponent] = []
    systemType: SystemType
    systemDescription: str = ""
    numberOfCustomers: Optional[int] = None
    populationServed: Optional[PopulationServed] = None
    isActive: Optional[bool] = None


class MonetaryValue(BaseModel):
    value: str
    currency: str


class BalanceCredit(BaseModel):
    credit: MonetaryValue
    plan: Optional[MonetaryValue] = None
    technical_debt: Optional[MonetaryValue] = None


class Customer(_Document):
    id: Optional[ObjectId] = Field(default=None, alias="_id")
    name: str
    code: str
    phone_number: Optional[str] = None
    service_area_id: str
    active: bool = True
    balances: Optional[BalanceCredit] = None
    meters: List[Union[str, ObjectId]] = []
    site_id: Optional[str] = None
    last_heartbeat: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def _code_has_type_segment(cls, v: str) -> str:
        if len(v.split(":")) < 3:
            raise ValueError("code must look like prefix:type:suffix")
        return v

    @property
    def customer_type(self) -> str:
        return self.code.split(":")[1]


class MonetaryAmount(BaseModel):
    value: str
    currency: str
    kWh: Optional[float] = None

    @field_validator("value")
    @classmethod
    def _value_is_decimal(cls, v: str) -> str:
        float(v)
        return v


class Payment(_Document):
    id: Optional[ObjectId] = Field(default=None, alias="_id")
    customer_id: ObjectId
    recipient_id: Optional[Union[str, ObjectId]] = None
    amount: MonetaryAmount
    memo: str = "Cash payment"
    external_id: str
    status: str = "processed"
    timestamp: datetime
    service_area_id: ObjectId
    vendor: Optional[str] = None
    vendorId: Optional[str] = None
    vendor_commission: float = 0

    @property
    def customer_type(self) -> str:
        return self.external_id.split("-")[0]


class HourlyEnergyReading(BaseModel):
    hour: str
    energy_consumption: float
    cumulative_energy: float
    average_power: float

    @field_validator("hour")
    @classmethod
    def _hour_slot(cls, v: str) -> str:
        if v not in HOURS:
            raise ValueError("hour must be a two-digit slot 00-23")
        return v


class DailyEnergySummary(_Document):
    id: Optional[ObjectId] = Field(default=None, alias="_id")
    customerId: ObjectId
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    totalKWh: float = Field(ge=0)
    service_area_id: str
    customerType: Optional[str] = None
    meterSerial: Optional[str] = None
    last_heartbeat_end: Optional[str] = None
    readings: List[HourlyEnergyReading] = []

    @field_validator("date")
    @classmethod
    def _calendar_date(cls, v: str) -> str:
        datetime.strptime(v, "%Y-%m-%d")
        return v


class Meter(_Document):
    id: Optional[ObjectId] = Field(default=None, alias="_id")
    serial: str
    address: str
    operating_mode: str = "auto"
    meter_phase: Optional[str] = None
    tariff_id: Union[str, ObjectId]
    pole_id: Optional[str] = None
    utilityId: str
