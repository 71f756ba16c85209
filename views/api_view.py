from datetime import datetime
from typing import Any, Dict, List

from services.green_api_service import SendResult
from services.trigger_service import FireKey


class APIView:
    """View layer for command results - formats data returned to callers"""

    @staticmethod
    def format_send_result(result: SendResult) -> Dict[str, Any]:
        """{success, message} plus a timestamp"""
        response = result.to_dict()
        response["timestamp"] = datetime.now().isoformat()
        return response

    @staticmethod
    def format_pending_fires(pending: Dict[FireKey, datetime]) -> List[Dict[str, Any]]:
        return [
            {
                "trigger_id": key.trigger_id,
                "target": key.target,
                "fire_at": fire_at.isoformat(),
            }
            for key, fire_at in sorted(pending.items(), key=lambda item: item[1])
        ]

