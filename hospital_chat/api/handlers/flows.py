"""
Flow, flow response and message REST endpoints.
"""

from fastapi import APIRouter, Request, status

from ...core.exceptions import FlowNotFoundError
from ...services.flow import FlowService
from ...utils.validation import require_fields
from .common import json_body, listing


class FlowsHandler:
    """Flow definitions plus the response and message records around them."""

    def __init__(self, flows: FlowService):
        self.flows = flows
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):

        @self.router.post("", status_code=status.HTTP_201_CREATED)
        async def create_flow(request: Request):
            data = await json_body(request)
            require_fields(data, ["name", "flowJson"], "Name and flowJson are required")
            return {"success": True, "flow": await self.flows.create_flow(data)}

        @self.router.get("")
        async def list_flows():
            return listing("flows", await self.flows.list_flows())

        # Literal paths must be registered before "/{flow_id}".

        @self.router.post("/responses", status_code=status.HTTP_201_CREATED)
        async def create_flow_response(request: Request):
            data = await json_body(request)
            require_fields(
                data,
                ["flowId", "userPhone", "response"],
                "flowId, userPhone, and response are required",
            )
            return {"success": True, "flowResponse": await self.flows.process_flow_response(data)}

        @self.router.get("/responses/user/{phone_number}")
        async def responses_for_user(phone_number: str):
            return listing("responses", await self.flows.responses_for_user(phone_number))

        @self.router.post("/messages", status_code=status.HTTP_201_CREATED)
        async def create_message(request: Request):
            data = await json_body(request)
            require_fields(
                data,
                ["userPhone", "messageType", "content"],
                "userPhone, messageType, and content are required",
            )
            return {"success": True, "message": await self.flows.create_message(data)}

        @self.router.get("/messages/user/{phone_number}")
        async def messages_for_user(phone_number: str):
            return listing("messages", await self.flows.messages_for_user(phone_number))

        @self.router.get("/{flow_id}")
        async def get_flow(flow_id: str):
            flow = await self.flows.get_flow(flow_id)
            if flow is None:
                raise FlowNotFoundError("Flow not found")
            return {"success": True, "flow": flow}

        @self.router.put("/{flow_id}")
        async def update_flow(flow_id: str, request: Request):
            data = await json_body(request)
            flow = await self.flows.update_flow(flow_id, data)
            if flow is None:
                raise FlowNotFoundError("Flow not found")
            return {"success": True, "flow": flow}

        @self.router.delete("/{flow_id}")
        async def delete_flow(flow_id: str):
            if not await self.flows.delete_flow(flow_id):
                raise FlowNotFoundError("Flow not found")
            return {"success": True, "message": "Flow deleted successfully"}

        @self.router.get("/{flow_id}/responses")
        async def responses_for_flow(flow_id: str):
            return listing("responses", await self.flows.responses_for_flow(flow_id))

        @self.router.get("/{flow_id}/messages")
        async def messages_for_flow(flow_id: str):
            return listing("messages", await self.flows.messages_for_flow(flow_id))
