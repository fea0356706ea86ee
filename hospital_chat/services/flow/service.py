"""
Flow definitions, responses, trackings and message records.
"""

from typing import Any, Dict, List, Optional

from ...core.enums import FlowTrackingStatus, MessageDirection
from ...core.exceptions import FlowNotFoundError
from ...utils.date import now_iso
from ...utils.logging import get_logger
from ..store import DocumentStore, Collections

logger = get_logger("hospital.flows")


class FlowService:
    """Audit-style records around external form flows and messages."""

    def __init__(self, store: DocumentStore, doctors=None):
        self.store = store
        self.doctors = doctors
        self.flows = store.collection(Collections.FLOWS)
        self.responses = store.collection(Collections.FLOW_RESPONSES)
        self.trackings = store.collection(Collections.FLOW_TRACKINGS)
        self.messages = store.collection(Collections.MESSAGES)
        self.webhook_messages = store.collection(Collections.WEBHOOK_MESSAGES)

    # Flow definitions

    async def create_flow(self, data: Dict[str, Any]) -> Dict[str, Any]:
        flow = {
            **data,
            "createdAt": now_iso(),
            "updatedAt": now_iso(),
            "isActive": True,
            "version": 1,
        }
        flow.pop("id", None)
        flow_id = await self.flows.add(flow)
        return {"id": flow_id, **flow}

    async def get_flow(self, flow_id: str) -> Optional[Dict[str, Any]]:
        return await self.flows.get(flow_id)

    async def update_flow(self, flow_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply changes and bump the version."""
        current = await self.get_flow(flow_id)
        if current is None:
            return None
        payload = {
            **changes,
            "updatedAt": now_iso(),
            "version": int(current.get("version") or 1) + 1,
        }
        payload.pop("id", None)
        await self.flows.update(flow_id, payload)
        return await self.get_flow(flow_id)

    async def list_flows(self) -> List[Dict[str, Any]]:
        return await self.flows.where("isActive", True).order_by("createdAt", descending=True).get()

    async def delete_flow(self, flow_id: str) -> bool:
        return await self.flows.update(flow_id, {
            "isActive": False,
            "deletedAt": now_iso(),
            "updatedAt": now_iso(),
        })

    # Flow responses

    async def create_response(self, data: Dict[str, Any]) -> Dict[str, Any]:
        response = {**data, "createdAt": now_iso()}
        response.pop("id", None)
        response_id = await self.responses.add(response)
        return {"id": response_id, **response}

    async def responses_for_flow(self, flow_id: str) -> List[Dict[str, Any]]:
        return await self.responses.where("flowId", flow_id).order_by("createdAt", descending=True).get()

    async def responses_for_user(self, phone: str) -> List[Dict[str, Any]]:
        return await self.responses.where("userPhone", phone).order_by("createdAt", descending=True).get()

    # Flow launch tracking

    async def create_tracking(self, user_phone: str, flow_id: str, flow_token: str) -> Dict[str, Any]:
        tracking = {
            "userPhone": user_phone,
            "flowId": flow_id,
            "flowToken": flow_token,
            "status": FlowTrackingStatus.SENT.value,
            "createdAt": now_iso(),
            "updatedAt": now_iso(),
        }
        tracking_id = await self.trackings.add(tracking)
        return {"id": tracking_id, **tracking}

    async def find_tracking(self, flow_token: Optional[str], user_phone: Optional[str]) -> Optional[Dict[str, Any]]:
        """Tracking by correlation token, else the newest launch for the phone."""
        if flow_token:
            tracking = await self.trackings.where("flowToken", flow_token).first()
            if tracking is not None:
                return tracking
        if user_phone:
            return await (
                self.trackings.where("userPhone", user_phone)
                .order_by("createdAt", descending=True)
                .first()
            )
        return None

    async def complete_tracking(self, tracking_id: str, response_id: Optional[str]) -> bool:
        return await self.trackings.update(tracking_id, {
            "status": FlowTrackingStatus.COMPLETED.value,
            "responseId": response_id,
            "completedAt": now_iso(),
            "updatedAt": now_iso(),
        })

    async def record_webhook_message(self, raw: Dict[str, Any]) -> str:
        return await self.webhook_messages.add({"rawMessage": raw, "createdAt": now_iso()})

    # Message records

    async def create_message(self, data: Dict[str, Any]) -> Dict[str, Any]:
        message = {
            "direction": MessageDirection.OUTBOUND.value,
            "isResponse": False,
            **data,
            "createdAt": now_iso(),
        }
        message.pop("id", None)
        message_id = await self.messages.add(message)
        return {"id": message_id, **message}

    async def messages_for_flow(self, flow_id: str) -> List[Dict[str, Any]]:
        return await self.messages.where("flowId", flow_id).order_by("createdAt", descending=True).get()

    async def messages_for_user(self, phone: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        query = self.messages.where("userPhone", phone).order_by("createdAt", descending=True)
        if limit:
            query = query.limit(limit)
        return await query.get()

    # Generic response processing

    async def process_flow_response(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Save a response and run the next action its flow defines."""
        flow = await self.get_flow(data.get("flowId"))
        if flow is None:
            raise FlowNotFoundError(f"Flow {data.get('flowId')} not found")
        response = await self.create_response(data)
        action = self.determine_next_action(flow, data)
        if action:
            await self.execute_next_action(action, data)
        return response

    @staticmethod
    def determine_next_action(flow: Dict[str, Any], data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Next action of the answered screen whose condition matches."""
        screens = (flow.get("flowJson") or {}).get("screens") or []
        screen = next((s for s in screens if s.get("id") == data.get("screenId")), None)
        if not screen:
            return None
        for action in screen.get("nextActions") or []:
            if action.get("condition") == data.get("response") or action.get("condition") == "default":
                return action
        return None

    async def execute_next_action(self, action: Dict[str, Any], data: Dict[str, Any]) -> None:
        action_type = action.get("type")
        user_phone = data.get("userPhone")

        if action_type == "send_message":
            await self.create_message({
                "userPhone": user_phone,
                "messageType": "text",
                "content": action.get("message"),
                "flowId": data.get("flowId"),
            })
        elif action_type == "trigger_flow":
            next_flow = await self.get_flow(action.get("flowId"))
            if next_flow is not None:
                await self.create_message({
                    "userPhone": user_phone,
                    "messageType": "interactive",
                    "content": next_flow.get("flowJson"),
                    "flowId": action.get("flowId"),
                })
        elif action_type == "assign_doctor":
            doctors = await self.doctors.by_specialization(action.get("specialization")) if self.doctors else []
            if doctors:
                assigned = doctors[0]
                await self.create_message({
                    "userPhone": user_phone,
                    "messageType": "text",
                    "content": f"You have been assigned to Dr. {assigned.get('name')}. Contact: {assigned.get('phoneNumber')}",
                    "flowId": data.get("flowId"),
                    "doctorId": assigned["id"],
                })
        else:
            logger.info("Unknown flow action type: %s", action_type)
