# utility_mcp/services/tool_dispatch.py
"""
Tool catalog and the single call entry point.

Every call runs: validate arguments -> query -> validate result -> serialize.
Contract violations come back as error-flagged results with a field-by-field
diagnostic; anything else raised on the way comes back as an error-flagged
result carrying the exception message.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, TypeAdapter, ValidationError

from utility_mcp.models import tool_schema as schema
from utility_mcp.services import analytics_service as analytics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_model: Type[BaseModel]
    output: Union[Type[BaseModel], TypeAdapter]
    handler: Callable[..., Awaitable[Any]]

    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()

    def validate_output(self, result: Any) -> Any:
        if isinstance(self.output, TypeAdapter):
            return self.output.dump_python(self.output.validate_python(result), by_alias=True)
        return self.output.model_validate(result).model_dump(by_alias=True)


TOOLS: Dict[str, Tool] = {
    t.name: t
    for t in [
        Tool(
            name="getUtilityInfo",
            description="Get descriptive information (name, country, system type and components) for a utility",
            input_model=schema.GetUtilityInfoRequest,
            output=schema.UtilityInfoResponse,
            handler=analytics.get_utility_info,
        ),
        Tool(
            name="getCustomersCount",
            description="Get the number of customers for a given utility, broken down by customer type",
            input_model=schema.GetCustomersCountRequest,
            output=schema.CustomerCountResponse,
            handler=analytics.get_customers_count,
        ),
        Tool(
            name="getMonthlyPaymentTotals",
            description="Get the monthly payment totals per customer type for a given utility",
            input_model=schema.GetMonthlyPaymentTotalsRequest,
            output=schema.MonthlyPaymentTotalsResponse,
            handler=analytics.get_monthly_payment_totals,
        ),
        Tool(
            name="getMonthlyEnergySummary",
            description="Get energy consumption for a month: totals per customer type and the top 10 consumers",
            input_model=schema.GetMonthlyEnergySummaryRequest,
            output=schema.MonthlyEnergySummaryResponse,
            handler=analytics.get_monthly_energy_summary,
        ),
        Tool(
            name="getDailyEnergySummary",
            description="Get energy consumption for a single day: totals per customer type and per hour",
            input_model=schema.GetDailyEnergySummaryRequest,
            output=schema.DailyEnergySummaryResponse,
            handler=analytics.get_daily_energy_summary,
        ),
        Tool(
            name="getYearlyEnergySummary",
            description="Get energy consumption for a year: one entry per calendar month plus the top 10 consumers",
            input_model=schema.GetYearlyEnergySummaryRequest,
            output=schema.YearlyEnergySummaryResponse,
            handler=analytics.get_yearly_energy_summary,
        ),
        Tool(
            name="getYearlyPaymentTotals",
            description="Get payment totals for a year, one entry per calendar month",
            input_model=schema.GetYearlyPaymentTotalsRequest,
            output=schema.YearlyPaymentTotalsResponse,
            handler=analytics.get_yearly_payment_totals,
        ),
    ]
}


def list_tools() -> List[Dict[str, Any]]:
    return [
        {"name": t.name, "description": t.description, "inputSchema": t.input_schema()}
        for t in TOOLS.values()
    ]


def format_validation_error(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in error.errors()
    )


def _text_result(payload: Any, is_error: bool = False) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "content": [{"type": "text", "text": json.dumps(payload, indent=2, default=str)}],
    }
    if is_error:
        result["isError"] = True
    return result


async def call_tool(
    db: AsyncIOMotorDatabase,
    name: str,
    arguments: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    try:
        tool = TOOLS.get(name)
        if tool is None:
            raise ValueError(f"Unknown tool: {name}")

        logger.info(f"Calling tool {name}")
        validated_args = tool.input_model.model_validate(arguments if arguments is not None else {})
        result = await tool.handler(db, **validated_args.model_dump())
        return _text_result(tool.validate_output(result))

    except ValidationError as e:
        details = format_validation_error(e)
        logger.warning(f"Validation error in {name}: {details}")
        return _text_result(
            {
                "error": "Validation error",
                "details": details,
                "issues": e.errors(include_url=False, include_context=False, include_input=False),
            },
            is_error=True,
        )

    except Exception as e:
        logger.error(f"Tool execution error in {name}: {e}")
        return _text_result({"error": str(e) or e.__class__.__name__}, is_error=True)
