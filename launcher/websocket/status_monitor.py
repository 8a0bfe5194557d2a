"""
런치 상태 WebSocket 스트리밍

특정 job의 StatusMessageEvent를 브로커에서 받아 클라이언트로 전달합니다.
터미널 이벤트(launch-completed / step-failed)를 보내면 연결을 닫습니다.
"""

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from ..events.broker import StatusMessageEventBroker

logger = structlog.get_logger(__name__)


async def handle_status_websocket(websocket: WebSocket, broker: StatusMessageEventBroker, job_id: str) -> None:
    """job 상태 이벤트 스트리밍"""
    # 수락 전에 구독해 연결 직후 발행된 이벤트도 전달
    with broker.subscribe(job_id) as subscription:
        await websocket.accept()
        logger.info("status_websocket_connected", job_id=job_id)
        try:
            while True:
                event = await subscription.get()
                if event is None:
                    break
                await websocket.send_json(event.to_dict())
                if event.is_terminal:
                    break
        except WebSocketDisconnect:
            logger.info("status_websocket_disconnected", job_id=job_id)
            return
        except Exception as e:
            logger.error("status_websocket_error", job_id=job_id, error=str(e))

    if websocket.client_state == WebSocketState.CONNECTED:
        await websocket.close()
