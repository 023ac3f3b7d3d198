from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


AS_CONTEXT = "https://www.w3.org/ns/activitystreams"
SECURITY_CONTEXT = "https://w3id.org/security/v1"
AS_PUBLIC = "https://www.w3.org/ns/activitystreams#Public"

ACTIVITY_JSON = "application/activity+json"


class PublicKey(BaseModel):
    id: str
    owner: str
    publicKeyPem: str


class Image(BaseModel):
    type: str = "Image"
    mediaType: str
    url: str


class Actor(BaseModel):
    context: List[str] = Field(
        default=[AS_CONTEXT, SECURITY_CONTEXT],
        alias="@context",
    )
    id: str
    type: str = "Person"
    name: str
    preferredUsername: str
    summary: str
    published: str
    icon: Image
    url: str
    inbox: str
    outbox: str
    followers: str
    following: str
    publicKey: PublicKey


class Activity(BaseModel):
    """Any ActivityStreams activity.

    Unknown fields are kept as extras. An activity parsed from a received
    document serializes back to exactly that document.
    """

    model_config = ConfigDict(extra="allow")

    context: Any = Field(default=None, alias="@context")
    id: Any = None
    type: Any = None
    actor: Any = None
    object: Any = None

    _source: Optional[Dict[str, Any]] = PrivateAttr(default=None)

    def to_json(self) -> Dict[str, Any]:
        if self._source is not None:
            return self._source
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


class Follow(Activity):
    type: Literal["Follow"] = "Follow"


class Undo(Activity):
    type: Literal["Undo"] = "Undo"


class Accept(Activity):
    type: Literal["Accept"] = "Accept"


class Create(Activity):
    type: Literal["Create"] = "Create"


ACTIVITY_TYPES = {
    "Follow": Follow,
    "Undo": Undo,
    "Accept": Accept,
    "Create": Create,
}


def parse_activity(payload: Dict[str, Any]) -> Activity:
    activity_type = payload.get("type")
    model = ACTIVITY_TYPES.get(activity_type) if isinstance(activity_type, str) else None
    activity = (model or Activity).model_validate(payload)
    activity._source = payload
    return activity


class Note(BaseModel):
    id: str
    type: str = "Note"
    published: str
    attributedTo: str
    to: List[str] = [AS_PUBLIC]
    cc: List[str] = []
    content: str


class OrderedCollection(BaseModel):
    context: str = Field(default=AS_CONTEXT, alias="@context")
    id: str
    type: str = "OrderedCollection"
    totalItems: int
    first: str
    last: Optional[str] = None


class OrderedCollectionPage(BaseModel):
    context: str = Field(default=AS_CONTEXT, alias="@context")
    id: str
    type: str = "OrderedCollectionPage"
    partOf: str
    orderedItems: List[Union[Dict[str, Any], str]]
    next: Optional[str] = None


class Link(BaseModel):
    rel: str
    type: str
    href: str


class WebFinger(BaseModel):
    subject: str
    aliases: List[str]
    links: List[Link]


class Software(BaseModel):
    name: str
    version: str


class NodeInfo(BaseModel):
    version: str = "2.1"
    software: Software
    protocols: List[str] = ["activitypub"]
    usage: Dict[str, Dict[str, int]]
