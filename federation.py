"""
Actor directory, discovery documents and collection paging.

Every URI handed out here is derived from the configured hostname and the
username in the request path; nothing is looked up in a store.
"""

import html
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from lxml import etree

from config import Settings
from models import (
    ACTIVITY_JSON,
    AS_PUBLIC,
    Actor,
    Create,
    Image,
    Link,
    NodeInfo,
    Note,
    OrderedCollection,
    OrderedCollectionPage,
    PublicKey,
    Software,
    WebFinger,
)
from errors import NotFound


PROFILE_PAGE_REL = "http://webfinger.net/rel/profile-page"

SAMPLE_POST_ID = "12345"
SAMPLE_POST_PUBLISHED = "2023-08-13T11:32:00Z"
SAMPLE_POST_CONTENT = "Hello, world!"

FOLLOWERS_TOTAL_ITEMS = 314159265


def wants_activity_json(accept: Optional[str]) -> bool:
    if not accept:
        return False
    return any(value.strip() == ACTIVITY_JSON for value in accept.split(","))


class ActorDirectory:
    def __init__(self, settings: Settings):
        self.settings = settings

    def actor_id(self, username: str) -> str:
        return f"https://{self.settings.hostname}/@{username}"

    def collection_id(self, username: str, name: str) -> str:
        return f"{self.actor_id(username)}/{name}"

    def get_actor(self, username: str) -> Actor:
        actor_id = self.actor_id(username)
        return Actor(
            id=actor_id,
            name=self.settings.actor_name,
            preferredUsername=username,
            summary=self.settings.actor_summary,
            published=self.settings.actor_published,
            icon=Image(mediaType="image/png", url=f"{actor_id}/icon.png"),
            url=actor_id,
            inbox=self.collection_id(username, "inbox"),
            outbox=self.collection_id(username, "outbox"),
            followers=self.collection_id(username, "followers"),
            following=self.collection_id(username, "following"),
            publicKey=PublicKey(
                id=f"{actor_id}#main-key",
                owner=actor_id,
                publicKeyPem=self.settings.public_key_pem,
            ),
        )

    def get_profile_page(self, username: str) -> str:
        return f"<h1>@{html.escape(username)}</h1>not implemented yet."


class DiscoveryResolver:
    def __init__(self, settings: Settings, directory: ActorDirectory):
        self.settings = settings
        self.directory = directory

    def get_node_info(self) -> NodeInfo:
        return NodeInfo(
            software=Software(
                name=self.settings.software_name,
                version=self.settings.software_version,
            ),
            usage={"users": {"total": 1}},
        )

    def get_host_meta(self, request_host: str) -> bytes:
        xrd = etree.Element("XRD")
        etree.SubElement(
            xrd,
            "Link",
            rel="lrdd",
            type="application/xrd+xml",
            template=f"https://{request_host}/.well-known/webfinger?resource={{uri}}",
        )
        return etree.tostring(xrd, pretty_print=True, xml_declaration=True, encoding="UTF-8")

    def parse_resource(self, resource: str) -> str:
        """Return the local username named by a WebFinger resource.

        Accepts ``user``, ``@user``, ``user@host``, ``acct:user@host`` and
        ``acct:@user@host``. Raises NotFound for foreign hosts and empty
        usernames.
        """
        handle = resource
        if handle.startswith("acct:"):
            handle = handle[len("acct:"):]
        if handle.startswith("@"):
            handle = handle[1:]

        username, sep, host = handle.partition("@")
        if sep and host != self.settings.hostname:
            raise NotFound()
        if not username:
            raise NotFound()
        return username

    def get_webfinger(self, resource: str) -> WebFinger:
        username = self.parse_resource(resource)
        actor_url = self.directory.actor_id(username)
        return WebFinger(
            subject=f"acct:{username}@{self.settings.hostname}",
            aliases=[actor_url],
            links=[
                Link(rel=PROFILE_PAGE_REL, type="text/html", href=actor_url),
                Link(rel="self", type=ACTIVITY_JSON, href=actor_url),
            ],
        )


@dataclass
class CollectionSource:
    name: str
    total_items: int
    items: Callable[[str], List[Union[Dict[str, Any], str]]]
    has_last: bool = False
    open_ended: bool = False


class CollectionPaginator:
    """Serves one collection as an OrderedCollection with a single page.

    Any non-empty ``page`` value yields page 0. Open-ended collections
    always advertise a ``next`` page.
    """

    def __init__(self, directory: ActorDirectory, source: CollectionSource):
        self.directory = directory
        self.source = source

    def page_id(self, username: str, page: int) -> str:
        return f"{self.directory.collection_id(username, self.source.name)}?page={page}"

    def get_collection(self, username: str) -> OrderedCollection:
        first = self.page_id(username, 0)
        return OrderedCollection(
            id=self.directory.collection_id(username, self.source.name),
            totalItems=self.source.total_items,
            first=first,
            last=first if self.source.has_last else None,
        )

    def get_page(self, username: str) -> OrderedCollectionPage:
        page = 0
        return OrderedCollectionPage(
            id=self.page_id(username, page),
            partOf=self.directory.collection_id(username, self.source.name),
            orderedItems=self.source.items(username),
            next=self.page_id(username, page + 1) if self.source.open_ended else None,
        )

    def get(self, username: str, page: Optional[str] = None):
        if not page:
            return self.get_collection(username)
        return self.get_page(username)


def outbox_source(directory: ActorDirectory) -> CollectionSource:
    def items(username: str) -> List[Union[Dict[str, Any], str]]:
        actor_id = directory.actor_id(username)
        post_id = f"{actor_id}/posts/{SAMPLE_POST_ID}"
        cc = [directory.collection_id(username, "followers")]
        note = Note(
            id=post_id,
            published=SAMPLE_POST_PUBLISHED,
            attributedTo=actor_id,
            cc=cc,
            content=SAMPLE_POST_CONTENT,
        )
        create = Create(
            type="Create",
            id=post_id,
            published=SAMPLE_POST_PUBLISHED,
            actor=actor_id,
            to=[AS_PUBLIC],
            cc=cc,
            object=note.model_dump(),
        )
        return [create.to_json()]

    return CollectionSource(name="outbox", total_items=1, items=items, has_last=True)


def followers_source(settings: Settings) -> CollectionSource:
    return CollectionSource(
        name="followers",
        total_items=FOLLOWERS_TOTAL_ITEMS,
        items=lambda username: list(settings.followers),
        open_ended=True,
    )


def following_source(settings: Settings) -> CollectionSource:
    return CollectionSource(
        name="following",
        total_items=1,
        items=lambda username: list(settings.following),
        open_ended=True,
    )
