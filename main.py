import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from starlette.exceptions import HTTPException

from config import Settings
from errors import NotFound, http_exception_handler
from federation import (
    ActorDirectory,
    CollectionPaginator,
    DiscoveryResolver,
    followers_source,
    following_source,
    outbox_source,
    wants_activity_json,
)
from inbox import InboxDispatcher
from models import ACTIVITY_JSON
from request_log import RequestLog

load_dotenv()

logger = logging.getLogger(__name__)


class ActivityJSONResponse(JSONResponse):
    media_type = ACTIVITY_JSON


class JRDResponse(JSONResponse):
    media_type = "application/jrd+json"


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()

    client = httpx.AsyncClient(transport=transport, timeout=settings.delivery_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Serving federation node for {settings.hostname}")
        yield
        await client.aclose()

    app = FastAPI(title="activitypub-sandbox", lifespan=lifespan)
    app.add_exception_handler(HTTPException, http_exception_handler)

    directory = ActorDirectory(settings)
    discovery = DiscoveryResolver(settings, directory)
    outbox = CollectionPaginator(directory, outbox_source(directory))
    followers = CollectionPaginator(directory, followers_source(settings))
    following = CollectionPaginator(directory, following_source(settings))
    inbox = InboxDispatcher(
        directory,
        client,
        RequestLog(settings.request_log_path),
        timeout=settings.delivery_timeout,
    )

    app.state.settings = settings
    app.state.directory = directory
    app.state.inbox = inbox

    @app.get("/.well-known/nodeinfo")
    async def get_node_info():
        return discovery.get_node_info().model_dump()

    @app.get("/.well-known/host-meta")
    async def get_host_meta(request: Request):
        host = request.headers.get("host", settings.hostname)
        return Response(
            content=discovery.get_host_meta(host),
            media_type="application/xrd+xml",
        )

    @app.get("/.well-known/webfinger")
    async def get_webfinger(resource: str = ""):
        return JRDResponse(discovery.get_webfinger(resource).model_dump())

    @app.get("/@{username}")
    async def get_user(username: str, request: Request):
        if wants_activity_json(request.headers.get("Accept")):
            return ActivityJSONResponse(
                directory.get_actor(username).model_dump(by_alias=True)
            )
        return HTMLResponse(directory.get_profile_page(username))

    @app.get("/@{username}/icon.png")
    async def get_icon(username: str):
        if not os.path.isfile(settings.icon_path):
            raise NotFound()
        return FileResponse(settings.icon_path, media_type="image/png")

    @app.post("/@{username}/inbox")
    async def post_inbox(username: str, request: Request):
        return await inbox.dispatch(username, request)

    def collection_route(paginator: CollectionPaginator):
        async def get_collection(username: str, page: Optional[str] = None):
            document = paginator.get(username, page)
            return ActivityJSONResponse(
                document.model_dump(by_alias=True, exclude_none=True)
            )

        return get_collection

    for paginator in (outbox, followers, following):
        name = paginator.source.name
        app.get(f"/@{{username}}/{name}", name=f"get_{name}")(
            collection_route(paginator)
        )

    return app


if __name__ == "__main__":
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
