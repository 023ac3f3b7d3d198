import asyncio
import json
import logging
from typing import Any, Dict

import httpx
from fastapi import Request
from pydantic import ValidationError

from errors import DeliveryFailed, InvalidRequest, UnsupportedType
from federation import ActorDirectory
from models import ACTIVITY_JSON, AS_CONTEXT, Accept, Activity, Follow, Undo, parse_activity
from request_log import RequestLog

logger = logging.getLogger(__name__)

DISCONNECT_POLL_INTERVAL = 0.5

ACCEPTED = {"status": "accepted"}


async def wait_for_disconnect(request: Request):
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_INTERVAL)


async def cancel_on_disconnect(coro, request: Request):
    """Await ``coro`` unless the client behind ``request`` goes away first."""
    task = asyncio.ensure_future(coro)
    watcher = asyncio.ensure_future(wait_for_disconnect(request))
    try:
        done, _ = await asyncio.wait(
            {task, watcher}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for pending in (task, watcher):
            if not pending.done():
                pending.cancel()

    if task in done:
        return task.result()
    raise DeliveryFailed("inbound connection closed before delivery completed")


class InboxDispatcher:
    def __init__(
        self,
        directory: ActorDirectory,
        client: httpx.AsyncClient,
        request_log: RequestLog,
        timeout: float = 10.0,
    ):
        self.directory = directory
        self.client = client
        self.request_log = request_log
        self.timeout = timeout

    async def parse(self, request: Request) -> Activity:
        raw = await request.body()
        try:
            payload = json.loads(raw)
        except (ValueError, RecursionError):
            await self.request_log.write(request, raw.decode("utf-8", errors="replace"))
            raise InvalidRequest()

        await self.request_log.write(request, payload)

        if not isinstance(payload, dict):
            raise InvalidRequest()
        try:
            return parse_activity(payload)
        except ValidationError:
            raise InvalidRequest()

    async def dispatch(self, username: str, request: Request) -> Dict[str, str]:
        activity = await self.parse(request)

        if isinstance(activity, Follow):
            await cancel_on_disconnect(self.accept_follow(username, activity), request)
        elif isinstance(activity, Undo):
            self.acknowledge_undo(username, activity)
        else:
            raise UnsupportedType(activity.type)

        return ACCEPTED

    def build_accept(self, username: str, follow: Follow) -> Accept:
        actor_id = self.directory.actor_id(username)
        return Accept(
            **{
                "@context": AS_CONTEXT,
                "id": f"{actor_id}#follow",
                "type": "Accept",
                "actor": actor_id,
                "object": follow.to_json(),
            }
        )

    async def accept_follow(self, username: str, follow: Follow):
        accept = self.build_accept(username, follow)
        await self.deliver(follow.actor, accept.to_json())
        logger.info(f"Accepted follow from {follow.actor} for @{username}")

    def acknowledge_undo(self, username: str, undo: Undo):
        undone = undo.object.get("type") if isinstance(undo.object, dict) else undo.object
        logger.info(f"Acknowledged undo of {undone} from {undo.actor} for @{username}")

    async def deliver(self, target: Any, activity: Dict[str, Any]):
        if not isinstance(target, str) or not target:
            logger.warning(f"Failed to prepare {activity.get('type')} message: actor is {target!r}")
            raise DeliveryFailed(f"invalid target: {target!r}")

        try:
            response = await self.client.post(
                target,
                content=json.dumps(activity),
                headers={"Content-Type": ACTIVITY_JSON},
                timeout=self.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Failed to deliver {activity.get('type')} message to {target}: {e!r}")
            raise DeliveryFailed(str(e)) from e

        if response.status_code != 200:
            logger.warning(
                f"{activity.get('type')} message to {target} was denied: "
                f"HTTP {response.status_code}"
            )
            raise DeliveryFailed(f"HTTP {response.status_code}")
