# utility_mcp/api/mcp.py
#
# Stateless JSON-RPC endpoint: one message per HTTP request, nothing kept
# between calls.

import json
import logging
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, ConfigDict, ValidationError

from utility_mcp.core.config import settings
from utility_mcp.core.database import get_db
from utility_mcp.services.tool_dispatch import call_tool, list_tools

router = APIRouter()
logger = logging.getLogger(__name__)

DEFAULT_PROTOCOL_VERSION = "2025-03-26"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class JsonRpcRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    jsonrpc: str
    method: str
    id: Optional[Union[int, str]] = None
    params: Optional[Dict[str, Any]] = None


class JsonRpcError(Exception):
    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def _result(request_id: Any, result: Dict[str, Any]) -> JSONResponse:
    return JSONResponse({"jsonrpc": "2.0", "id": request_id, "result": result})


def _error(request_id: Any, code: int, message: str, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}},
    )


async def _dispatch(message: JsonRpcRequest, db: AsyncIOMotorDatabase) -> Dict[str, Any]:
    params = message.params or {}

    if message.method == "initialize":
        return {
            "protocolVersion": params.get("protocolVersion") or DEFAULT_PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": settings.SERVER_NAME, "version": settings.SERVER_VERSION},
        }

    if message.method == "ping":
        return {}

    if message.method == "tools/list":
        return {"tools": list_tools()}

    if message.method == "tools/call":
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise JsonRpcError(INVALID_PARAMS, "tools/call requires a tool name")
        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            raise JsonRpcError(INVALID_PARAMS, "tools/call arguments must be an object")
        return await call_tool(db, name, arguments)

    raise JsonRpcError(METHOD_NOT_FOUND, f"Method not found: {message.method}")


@router.post("/mcp")
async def handle_mcp(request: Request, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Handle one JSON-RPC message (initialize, ping, tools/list, tools/call)."""
    try:
        body = json.loads(await request.body())
    except ValueError:
        return _error(None, PARSE_ERROR, "Parse error")

    request_id = body.get("id") if isinstance(body, dict) else None
    try:
        message = JsonRpcRequest.model_validate(body)
    except ValidationError as e:
        logger.warning(f"Invalid JSON-RPC envelope: {e.errors(include_url=False)}")
        return _error(request_id, INVALID_REQUEST, "Invalid Request")
    if message.jsonrpc != "2.0":
        return _error(request_id, INVALID_REQUEST, "Invalid Request")

    # Notifications carry no id and get no body back.
    if message.id is None and message.method.startswith("notifications/"):
        logger.debug(f"Notification received: {message.method}")
        return Response(status_code=202)

    try:
        result = await _dispatch(message, db)
    except JsonRpcError as e:
        return _error(message.id, e.code, e.message)
    except Exception:
        logger.exception(f"Error handling MCP request {message.method}")
        return _error(message.id, INTERNAL_ERROR, "Internal server error", status_code=500)

    return _result(message.id, result)
